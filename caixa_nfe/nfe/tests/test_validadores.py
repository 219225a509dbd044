"""
Testes da validação de negócio do rascunho.
"""

from decimal import Decimal

import pytest

from caixa_nfe.nfe.choices import RegimeTributario
from caixa_nfe.nfe.rascunho import Pagamento, Totais, Transportadora, Transporte, calcular_totais
from caixa_nfe.nfe.validadores import (
    ErroValidacao,
    validar_cnpj,
    validar_cpf,
    validar_documento,
    validar_rascunho,
)
from caixa_nfe.tests.factories import (
    DestinatarioFactory,
    EmitenteFactory,
    EnderecoFactory,
    ImpostoFactory,
    ItemNFeFactory,
    RascunhoNFeFactory,
)


def _campos(erros):
    return {e.campo for e in erros}


class TestValidarCPF:
    def test_cpf_valido(self):
        assert validar_cpf("529.982.247-25") is True

    def test_cpf_invalido(self):
        assert validar_cpf("529.982.247-26") is False

    def test_cpf_repetido(self):
        assert validar_cpf("111.111.111-11") is False

    def test_cpf_tamanho_errado(self):
        assert validar_cpf("123") is False


class TestValidarCNPJ:
    def test_cnpj_valido(self):
        assert validar_cnpj("11.222.333/0001-81") is True

    def test_cnpj_invalido(self):
        assert validar_cnpj("11.222.333/0001-82") is False

    def test_cnpj_repetido(self):
        assert validar_cnpj("00000000000000") is False

    def test_documento_escolhe_pelo_tamanho(self):
        assert validar_documento("52998224725") is True
        assert validar_documento("11222333000181") is True
        assert validar_documento("1234567890") is False
        assert validar_documento("") is False


class TestValidarRascunho:
    def test_rascunho_minimo_valido(self, rascunho):
        assert validar_rascunho(rascunho) == []

    def test_sem_itens(self):
        erros = validar_rascunho(RascunhoNFeFactory(itens=[]))
        assert len(erros) >= 1
        assert "itens" in _campos(erros)

    def test_acumula_todos_os_erros(self):
        rascunho = RascunhoNFeFactory(
            emitente=EmitenteFactory(cnpj="11111111111111", razao_social=""),
            destinatario=DestinatarioFactory(documento="", nome=""),
            natureza_operacao="",
        )
        campos = _campos(validar_rascunho(rascunho))
        assert {
            "emitente.cnpj",
            "emitente.razao_social",
            "destinatario.documento",
            "destinatario.nome",
            "natureza_operacao",
        } <= campos

    def test_erro_tem_campo_e_mensagem(self):
        erros = validar_rascunho(RascunhoNFeFactory(itens=[]))
        assert isinstance(erros[0], ErroValidacao)
        assert str(erros[0]) == erros[0].mensagem

    @pytest.mark.parametrize("ie,valido", [("123456789012", True), ("ISENTO", True), ("", False), ("ABC", False)])
    def test_inscricao_estadual(self, ie, valido):
        rascunho = RascunhoNFeFactory(emitente=EmitenteFactory(inscricao_estadual=ie))
        assert ("emitente.inscricao_estadual" not in _campos(validar_rascunho(rascunho))) is valido

    def test_municipio_e_uf_do_emitente(self):
        endereco = EnderecoFactory(codigo_municipio="355030", uf="XX")
        campos = _campos(validar_rascunho(RascunhoNFeFactory(emitente=EmitenteFactory(endereco=endereco))))
        assert "emitente.endereco.codigo_municipio" in campos
        assert "emitente.endereco.uf" in campos

    def test_documento_do_destinatario_invalido(self):
        rascunho = RascunhoNFeFactory(destinatario=DestinatarioFactory(documento="12345678900"))
        assert "destinatario.documento" in _campos(validar_rascunho(rascunho))

    def test_destinatario_sem_endereco(self):
        rascunho = RascunhoNFeFactory(destinatario=DestinatarioFactory(endereco=None))
        assert validar_rascunho(rascunho) == []

    def test_municipio_do_destinatario(self):
        destinatario = DestinatarioFactory(endereco=EnderecoFactory(codigo_municipio=""))
        assert "destinatario.endereco.codigo_municipio" in _campos(
            validar_rascunho(RascunhoNFeFactory(destinatario=destinatario))
        )

    @pytest.mark.parametrize(
        "campo,valor",
        [
            ("descricao", ""),
            ("codigo", " "),
            ("ncm", "1234"),
            ("cfop", "510"),
            ("quantidade", Decimal("0")),
            ("valor_unitario", Decimal("-1")),
        ],
    )
    def test_campos_do_item(self, campo, valor):
        item = ItemNFeFactory(**{campo: valor})
        assert f"itens[0].{campo}" in _campos(validar_rascunho(RascunhoNFeFactory(itens=[item])))

    def test_valor_total_zero(self):
        item = ItemNFeFactory(valor_total=Decimal("0"))
        assert "itens[0].valor_total" in _campos(validar_rascunho(RascunhoNFeFactory(itens=[item])))

    def test_total_do_item_inconsistente(self):
        item = ItemNFeFactory(quantidade=Decimal("10"), valor_unitario=Decimal("15.505"), valor_total=Decimal("150.00"))
        erros = validar_rascunho(RascunhoNFeFactory(itens=[item]))
        assert "itens[0].valor_total" in _campos(erros)

    def test_total_do_item_dentro_da_tolerancia(self):
        item = ItemNFeFactory(quantidade=Decimal("3"), valor_unitario=Decimal("3.333"), valor_total=Decimal("10.00"))
        assert validar_rascunho(RascunhoNFeFactory(itens=[item])) == []

    def test_indice_do_item_no_campo(self):
        itens = [ItemNFeFactory(), ItemNFeFactory(ncm="")]
        erros = validar_rascunho(RascunhoNFeFactory(itens=itens))
        assert _campos(erros) == {"itens[1].ncm"}
        assert erros[0].mensagem.startswith("Item 2")

    def test_csosn_no_simples(self):
        item = ItemNFeFactory(icms=ImpostoFactory(codigo="00"))
        assert "itens[0].icms.codigo" in _campos(validar_rascunho(RascunhoNFeFactory(itens=[item])))

    def test_cst_no_regime_normal(self):
        emitente = EmitenteFactory(regime_tributario=RegimeTributario.REGIME_NORMAL)
        valido = ItemNFeFactory(icms=ImpostoFactory(codigo="40"))
        invalido = ItemNFeFactory(icms=ImpostoFactory(codigo="102"))
        assert validar_rascunho(RascunhoNFeFactory(emitente=emitente, itens=[valido])) == []
        assert "itens[0].icms.codigo" in _campos(
            validar_rascunho(RascunhoNFeFactory(emitente=emitente, itens=[invalido]))
        )

    @pytest.mark.parametrize("serie", ["1000", "-1", "A"])
    def test_serie_invalida(self, serie):
        assert "serie" in _campos(validar_rascunho(RascunhoNFeFactory(serie=serie)))

    @pytest.mark.parametrize("numero", [0, 1_000_000_000])
    def test_numero_fora_da_faixa(self, numero):
        assert "numero" in _campos(validar_rascunho(RascunhoNFeFactory(numero=numero)))

    def test_serie_zero_aceita(self):
        assert validar_rascunho(RascunhoNFeFactory(serie="0")) == []

    def test_modalidade_frete_invalida(self):
        rascunho = RascunhoNFeFactory(transporte=Transporte(modalidade=5))
        assert "transporte.modalidade" in _campos(validar_rascunho(rascunho))

    def test_transportadora_sem_nome(self):
        transporte = Transporte(modalidade=0, transportadora=Transportadora(documento="11222333000181", nome=""))
        assert "transporte.transportadora.nome" in _campos(
            validar_rascunho(RascunhoNFeFactory(transporte=transporte))
        )

    def test_placa_exige_uf(self):
        transporte = Transporte(modalidade=0, placa="ABC1D23")
        assert "transporte.uf_veiculo" in _campos(validar_rascunho(RascunhoNFeFactory(transporte=transporte)))

    def test_meio_de_pagamento_invalido(self):
        rascunho = RascunhoNFeFactory(pagamento=Pagamento(meio="42"))
        assert "pagamento.meio" in _campos(validar_rascunho(rascunho))

    def test_modelo_inteiro_aceito(self):
        assert validar_rascunho(RascunhoNFeFactory(modelo=65)) == []

    def test_modelo_desconhecido(self):
        assert "modelo" in _campos(validar_rascunho(RascunhoNFeFactory(modelo=57)))

    def test_ambiente_invalido(self):
        assert "ambiente" in _campos(validar_rascunho(RascunhoNFeFactory(ambiente="3")))

    def test_crt_inteiro_aceito(self):
        emitente = EmitenteFactory(regime_tributario=3)
        item = ItemNFeFactory(icms=ImpostoFactory(codigo="00"))
        assert validar_rascunho(RascunhoNFeFactory(emitente=emitente, itens=[item])) == []

    def test_crt_desconhecido_vira_erro(self):
        rascunho = RascunhoNFeFactory(emitente=EmitenteFactory(regime_tributario=7))
        rascunho.totais = Totais()
        erros = validar_rascunho(rascunho)
        assert _campos(erros) == {"emitente.regime_tributario"}

    @pytest.mark.parametrize("texto", ["Produto\x01X", "Produto\x00", "Produto\x1b[0m"])
    def test_caractere_de_controle_na_descricao(self, texto):
        item = ItemNFeFactory(descricao=texto)
        erros = validar_rascunho(RascunhoNFeFactory(itens=[item]))
        assert _campos(erros) == {"itens[0].descricao"}

    def test_caractere_de_controle_em_outros_textos(self):
        rascunho = RascunhoNFeFactory(
            natureza_operacao="VENDA\x02",
            informacoes_adicionais="obs\x0c",
            destinatario=DestinatarioFactory(nome="Maria\x07"),
        )
        assert {"natureza_operacao", "informacoes_adicionais", "destinatario.nome"} <= _campos(
            validar_rascunho(rascunho)
        )

    def test_tabulacao_e_quebra_de_linha_permitidas(self):
        rascunho = RascunhoNFeFactory(informacoes_adicionais="linha 1\nlinha 2\tfim")
        assert validar_rascunho(rascunho) == []

    def test_tributos_aproximados_negativos(self):
        item = ItemNFeFactory(valor_tributos=Decimal("-1"))
        assert "itens[0].valor_tributos" in _campos(validar_rascunho(RascunhoNFeFactory(itens=[item])))


class TestTotaisDeclarados:
    def test_totais_iguais_aos_calculados(self):
        rascunho = RascunhoNFeFactory()
        rascunho.totais = calcular_totais(rascunho)
        assert validar_rascunho(rascunho) == []

    def test_totais_divergentes(self):
        rascunho = RascunhoNFeFactory()
        totais = calcular_totais(rascunho)
        rascunho.totais = Totais(**{**vars(totais), "valor_total": totais.valor_total + Decimal("1")})
        assert "totais.valor_total" in _campos(validar_rascunho(rascunho))

    def test_calculo_inclui_frete_ipi_e_desconto(self):
        item = ItemNFeFactory(
            quantidade=Decimal("1"),
            valor_unitario=Decimal("100.00"),
            valor_total=Decimal("100.00"),
            valor_frete=Decimal("10.00"),
            valor_desconto=Decimal("5.00"),
            ipi=ImpostoFactory(codigo="50", aliquota=Decimal("10"), base_calculo=Decimal("100"), valor=Decimal("10")),
        )
        totais = calcular_totais(RascunhoNFeFactory(itens=[item]))
        assert totais.valor_produtos == Decimal("100.00")
        assert totais.valor_ipi == Decimal("10")
        assert totais.valor_total == Decimal("115.00")

    def test_base_icms_so_para_cst_tributado(self):
        emitente = EmitenteFactory(regime_tributario=RegimeTributario.REGIME_NORMAL)
        tributado = ItemNFeFactory(
            icms=ImpostoFactory(codigo="00", aliquota=Decimal("18"), base_calculo=Decimal("100"), valor=Decimal("18"))
        )
        isento = ItemNFeFactory(icms=ImpostoFactory(codigo="40", base_calculo=Decimal("100"), valor=Decimal("18")))
        totais = calcular_totais(RascunhoNFeFactory(emitente=emitente, itens=[tributado, isento]))
        assert totais.base_calculo_icms == Decimal("100")
        assert totais.valor_icms == Decimal("18")
