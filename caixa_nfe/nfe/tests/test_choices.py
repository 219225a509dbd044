"""
Testes das enumerações e transições de status.
"""

import pytest

from caixa_nfe.nfe.choices import (
    AmbienteNFe,
    ModalidadeFrete,
    ModeloDocumento,
    RegimeTributario,
    StatusNFe,
    pode_transitar,
)


class TestRegimeTributario:
    @pytest.mark.parametrize(
        "regime,simplificado",
        [
            (RegimeTributario.SIMPLES_NACIONAL, True),
            (RegimeTributario.SIMPLES_EXCESSO_SUBLIMITE, True),
            (RegimeTributario.REGIME_NORMAL, False),
        ],
    )
    def test_simplificado(self, regime, simplificado):
        assert regime.simplificado is simplificado

    def test_valores_do_crt(self):
        assert RegimeTributario("3") is RegimeTributario.REGIME_NORMAL


class TestCodigos:
    def test_ambiente(self):
        assert AmbienteNFe.PRODUCAO == "1"
        assert AmbienteNFe.HOMOLOGACAO == "2"

    def test_modelo(self):
        assert ModeloDocumento.NFE == "55"
        assert ModeloDocumento.NFCE == "65"

    def test_modalidade_frete(self):
        assert sorted(ModalidadeFrete.values) == [0, 1, 2, 3, 4, 9]


class TestTransicoesStatus:
    @pytest.mark.parametrize(
        "de,para",
        [
            (StatusNFe.RASCUNHO, StatusNFe.ENVIADA),
            (StatusNFe.ENVIADA, StatusNFe.AUTORIZADA),
            (StatusNFe.ENVIADA, StatusNFe.REJEITADA),
            (StatusNFe.REJEITADA, StatusNFe.ENVIADA),
            (StatusNFe.AUTORIZADA, StatusNFe.CANCELADA),
        ],
    )
    def test_permitidas(self, de, para):
        assert pode_transitar(de, para) is True

    @pytest.mark.parametrize(
        "de,para",
        [
            (StatusNFe.RASCUNHO, StatusNFe.AUTORIZADA),
            (StatusNFe.REJEITADA, StatusNFe.CANCELADA),
            (StatusNFe.CANCELADA, StatusNFe.AUTORIZADA),
            (StatusNFe.AUTORIZADA, StatusNFe.RASCUNHO),
        ],
    )
    def test_proibidas(self, de, para):
        assert pode_transitar(de, para) is False

    def test_aceita_strings(self):
        assert pode_transitar("AUTORIZADA", "CANCELADA") is True
