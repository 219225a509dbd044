"""
Testes da chave de acesso de 44 dígitos.
"""

from datetime import date
from unittest.mock import patch

import pytest

from caixa_nfe.nfe.chave_acesso import (
    CODIGOS_UF,
    calcular_digito_verificador,
    codigo_uf,
    decompor_chave_acesso,
    formatar_chave_acesso,
    gerar_chave_acesso,
    gerar_codigo_numerico,
    id_documento,
    validar_chave_acesso,
)
from caixa_nfe.nfe.exceptions import ChaveAcessoError, UFDesconhecidaError


def _chave_sp(**kwargs):
    params = {
        "uf": "SP",
        "cnpj": "11222333000181",
        "modelo": "55",
        "serie": "1",
        "numero": 42,
        "data_emissao": date(2024, 3, 15),
        "codigo_numerico": "12345678",
    }
    params.update(kwargs)
    return gerar_chave_acesso(**params)


class TestCodigoUF:
    def test_tabela_tem_27_ufs(self):
        assert len(CODIGOS_UF) == 27

    def test_sp(self):
        assert codigo_uf("SP") == "35"

    def test_minusculas_e_espacos(self):
        assert codigo_uf(" rj ") == "33"

    def test_uf_desconhecida_falha(self):
        with pytest.raises(UFDesconhecidaError, match="XX"):
            codigo_uf("XX")

    def test_uf_desconhecida_e_chave_acesso_error(self):
        with pytest.raises(ChaveAcessoError):
            codigo_uf("")


class TestDigitoVerificador:
    def test_exemplo_conhecido(self):
        """Pesos 2..9 da direita para a esquerda."""
        # 4*2 + 3*3 + 2*4 + 1*5 = 30; 30 % 11 = 8; 11 - 8 = 3
        assert calcular_digito_verificador("1234") == "3"

    def test_resto_zero_ou_um_vira_zero(self):
        # soma 0: 11 - 0 = 11 → 0
        assert calcular_digito_verificador("0000") == "0"
        # 6*2 = 12; 12 % 11 = 1; 11 - 1 = 10 → 0
        assert calcular_digito_verificador("6") == "0"

    def test_rejeita_nao_digitos(self):
        with pytest.raises(ChaveAcessoError):
            calcular_digito_verificador("12a4")

    @pytest.mark.parametrize("numero", [1, 42, 999, 123456, 999999999])
    def test_digito_sempre_entre_0_e_9(self, numero):
        chave = _chave_sp(numero=numero)
        assert chave[43] in "0123456789"
        assert calcular_digito_verificador(chave[:43]) == chave[43]


class TestGerarChaveAcesso:
    def test_exemplo_sp_marco_2024(self):
        chave = _chave_sp()
        assert len(chave) == 44
        assert chave[0:2] == "35"
        assert chave[2:6] == "2403"
        assert chave[6:20] == "11222333000181"
        assert chave[20:22] == "55"
        assert chave[22:25] == "001"
        assert chave[25:34] == "000000042"
        assert chave[34] == "1"
        assert chave[35:43] == "12345678"
        assert validar_chave_acesso(chave)

    def test_cnpj_com_pontuacao(self):
        assert _chave_sp(cnpj="11.222.333/0001-81")[6:20] == "11222333000181"

    def test_nfce_modelo_65(self):
        assert _chave_sp(modelo=65)[20:22] == "65"

    def test_codigo_numerico_aleatorio(self):
        chave = _chave_sp(codigo_numerico=None)
        assert chave.isdigit()
        assert len(chave) == 44

    @patch("caixa_nfe.nfe.chave_acesso.secrets.randbelow", return_value=42)
    def test_codigo_numerico_usa_secrets(self, mock_randbelow):
        assert gerar_codigo_numerico() == "00000042"
        mock_randbelow.assert_called_once_with(10**8)

    def test_uf_desconhecida(self):
        with pytest.raises(UFDesconhecidaError):
            _chave_sp(uf="ZZ")

    @pytest.mark.parametrize(
        "campo,valor",
        [
            ("modelo", "57"),
            ("serie", "1000"),
            ("serie", "A"),
            ("numero", 0),
            ("numero", 1_000_000_000),
            ("tipo_emissao", 0),
            ("cnpj", ""),
            ("cnpj", "123456789012345"),
            ("codigo_numerico", "123"),
        ],
    )
    def test_campos_invalidos(self, campo, valor):
        with pytest.raises(ChaveAcessoError):
            _chave_sp(**{campo: valor})


class TestUtilitarios:
    def test_validar_chave_com_dv_errado(self):
        chave = _chave_sp()
        errada = chave[:43] + str((int(chave[43]) + 1) % 10)
        assert validar_chave_acesso(errada) is False

    def test_validar_chave_tamanho_errado(self):
        assert validar_chave_acesso("123") is False
        assert validar_chave_acesso("") is False

    def test_decompor(self):
        partes = decompor_chave_acesso(_chave_sp())
        assert partes["uf"] == "35"
        assert partes["ano_mes"] == "2403"
        assert partes["numero"] == "000000042"
        assert partes["codigo_numerico"] == "12345678"

    def test_decompor_invalida(self):
        with pytest.raises(ChaveAcessoError):
            decompor_chave_acesso("abc")

    def test_formatar_em_blocos_de_4(self):
        formatada = formatar_chave_acesso(_chave_sp())
        blocos = formatada.split(" ")
        assert len(blocos) == 11
        assert all(len(b) == 4 for b in blocos)

    def test_id_documento(self):
        chave = _chave_sp()
        assert id_documento(chave) == f"NFe{chave}"
