"""
Construtor do XML da NF-e/NFC-e no leiaute 4.00.

Ordem dos grupos em infNFe (MOC 7.0):
  ide → emit → dest → det* (prod + imposto) → total/ICMSTot →
  transp → pag → [infAdic]

O rascunho é validado antes; qualquer violação interrompe a montagem com
``RascunhoInvalidoError`` carregando a lista completa de erros.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from lxml import etree

from caixa_nfe.nfe.chave_acesso import codigo_uf, gerar_chave_acesso, id_documento
from caixa_nfe.nfe.choices import AmbienteNFe, MeioPagamento, ModeloDocumento, RegimeTributario
from caixa_nfe.nfe.exceptions import RascunhoInvalidoError
from caixa_nfe.nfe.rascunho import (
    Destinatario,
    Emitente,
    Endereco,
    Imposto,
    ItemNFe,
    RascunhoNFe,
    Totais,
    calcular_totais,
    decimal,
    tributos_aproximados,
)
from caixa_nfe.nfe.validadores import validar_rascunho

logger = logging.getLogger(__name__)

NSMAP = {
    None: "http://www.portalfiscal.inf.br/nfe",
}

NS = "{http://www.portalfiscal.inf.br/nfe}"

VERSAO_LEIAUTE = "4.00"

BRT = timezone(timedelta(hours=-3))

# Texto exigido pela SEFAZ no xNome do destinatário em homologação
NOME_HOMOLOGACAO = "NF-E EMITIDA EM AMBIENTE DE HOMOLOGACAO - SEM VALOR FISCAL"

_DUAS_CASAS = Decimal("0.01")
_QUATRO_CASAS = Decimal("0.0001")

_AMBIENTES = {
    "producao": AmbienteNFe.PRODUCAO,
    "homologacao": AmbienteNFe.HOMOLOGACAO,
}


@dataclass(frozen=True)
class NFeMontada:
    """XML não assinado + identificação do elemento a assinar."""

    xml: str
    id_elemento: str
    chave_acesso: str


def construir_nfe(rascunho: RascunhoNFe, codigo_numerico: str | None = None) -> NFeMontada:
    """
    Valida o rascunho e monta o XML ``<NFe><infNFe Id=... versao="4.00">``.

    Raises:
        RascunhoInvalidoError: uma ou mais regras violadas.
        ChaveAcessoError: campo inválido na composição da chave.
    """
    erros = validar_rascunho(rascunho)
    if erros:
        logger.info("Rascunho de NF-e %s rejeitado com %d erro(s)", rascunho.numero, len(erros))
        raise RascunhoInvalidoError(erros)

    # enums a partir daqui: 65 e "65" montam a mesma NFC-e
    rascunho = replace(
        rascunho,
        modelo=ModeloDocumento(str(rascunho.modelo)),
        ambiente=ambiente_configurado() if rascunho.ambiente is None else AmbienteNFe(str(rascunho.ambiente)),
    )
    data_emissao = data_brt(rascunho.data_emissao)
    chave = gerar_chave_acesso(
        uf=rascunho.emitente.endereco.uf,
        cnpj=rascunho.emitente.cnpj,
        modelo=rascunho.modelo,
        serie=rascunho.serie,
        numero=rascunho.numero,
        data_emissao=data_emissao,
        tipo_emissao=rascunho.tipo_emissao,
        codigo_numerico=codigo_numerico,
    )
    id_elemento = id_documento(chave)

    nfe = etree.Element(f"{NS}NFe", nsmap=NSMAP)
    # Id antes de versao: mesma ordem que a C14N produz
    inf_nfe = etree.SubElement(nfe, f"{NS}infNFe", Id=id_elemento, versao=VERSAO_LEIAUTE)

    totais = calcular_totais(rascunho)
    regime = rascunho.regime
    escrever_icms = _escritor_icms(regime)

    _adicionar_identificacao(inf_nfe, rascunho, chave, data_emissao)
    _adicionar_emitente(inf_nfe, rascunho.emitente)
    _adicionar_destinatario(inf_nfe, rascunho)
    for n_item, item in enumerate(rascunho.itens, start=1):
        _adicionar_item(inf_nfe, n_item, item, escrever_icms, tributos_aproximados(item, regime))
    _adicionar_totais(inf_nfe, totais)
    _adicionar_transporte(inf_nfe, rascunho)
    _adicionar_pagamento(inf_nfe, rascunho, totais)
    if rascunho.informacoes_adicionais:
        inf_adic = etree.SubElement(inf_nfe, f"{NS}infAdic")
        _sub_text(inf_adic, "infCpl", rascunho.informacoes_adicionais)

    logger.info("NF-e montada: %s (%d item(ns))", chave, len(rascunho.itens))
    return NFeMontada(xml=nfe_para_string(nfe), id_elemento=id_elemento, chave_acesso=chave)


def nfe_para_string(nfe: etree._Element) -> str:
    """Serializa o elemento NFe para string XML."""
    return etree.tostring(
        nfe,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=False,
    ).decode("UTF-8")


def ambiente_configurado() -> AmbienteNFe:
    """Ambiente padrão de ``NFE_CONFIG["AMBIENTE"]`` (producao/homologacao ou 1/2)."""
    valor = str(settings.NFE_CONFIG.get("AMBIENTE", "homologacao")).strip().lower()
    if valor in _AMBIENTES:
        return _AMBIENTES[valor]
    if valor in AmbienteNFe.values:
        return AmbienteNFe(valor)
    raise ImproperlyConfigured(f"NFE_CONFIG['AMBIENTE'] inválido: {valor!r}")


# ---------------------------------------------------------------------------
# Blocos de construção (na ordem do leiaute 4.00)
# ---------------------------------------------------------------------------


def _adicionar_identificacao(parent: etree._Element, rascunho: RascunhoNFe, chave: str, data: datetime) -> None:
    """Grupo ide."""
    emitente = rascunho.emitente
    ide = etree.SubElement(parent, f"{NS}ide")
    _sub_text(ide, "cUF", codigo_uf(emitente.endereco.uf))
    _sub_text(ide, "cNF", chave[35:43])
    _sub_text(ide, "natOp", rascunho.natureza_operacao.strip())
    _sub_text(ide, "mod", str(rascunho.modelo))
    _sub_text(ide, "serie", str(int(rascunho.serie)))
    _sub_text(ide, "nNF", str(rascunho.numero))
    _sub_text(ide, "dhEmi", data.isoformat(timespec="seconds"))
    _sub_text(ide, "tpNF", "1")  # 1=Saída
    _sub_text(ide, "idDest", _indicador_destino(rascunho))
    _sub_text(ide, "cMunFG", emitente.endereco.codigo_municipio)
    # 1=DANFE retrato, 4=DANFE NFC-e
    _sub_text(ide, "tpImp", "4" if rascunho.modelo == ModeloDocumento.NFCE else "1")
    _sub_text(ide, "tpEmis", str(rascunho.tipo_emissao))
    _sub_text(ide, "cDV", chave[43])
    _sub_text(ide, "tpAmb", str(rascunho.ambiente))
    _sub_text(ide, "finNFe", str(rascunho.finalidade))
    _sub_text(ide, "indFinal", _indicador_consumidor_final(rascunho))
    _sub_text(ide, "indPres", str(rascunho.presenca))
    _sub_text(ide, "procEmi", "0")  # 0=Aplicativo do contribuinte
    _sub_text(ide, "verProc", settings.NFE_CONFIG["VERSAO_PROCESSO"])


def _adicionar_emitente(parent: etree._Element, emitente: Emitente) -> None:
    """Grupo emit: CNPJ + xNome + [xFant] + enderEmit + IE + CRT."""
    emit = etree.SubElement(parent, f"{NS}emit")
    _sub_text(emit, "CNPJ", _limpar_doc(emitente.cnpj))
    _sub_text(emit, "xNome", emitente.razao_social.strip())
    if emitente.nome_fantasia:
        _sub_text(emit, "xFant", emitente.nome_fantasia.strip())
    _adicionar_endereco(emit, "enderEmit", emitente.endereco)
    _sub_text(emit, "IE", _limpar_ie(emitente.inscricao_estadual))
    _sub_text(emit, "CRT", str(emitente.regime_tributario))


def _adicionar_destinatario(parent: etree._Element, rascunho: RascunhoNFe) -> None:
    """Grupo dest: choice(CNPJ|CPF) + xNome + [enderDest] + indIEDest + [IE] + [email]."""
    destinatario: Destinatario = rascunho.destinatario
    dest = etree.SubElement(parent, f"{NS}dest")

    doc = _limpar_doc(destinatario.documento)
    _sub_text(dest, "CNPJ" if len(doc) == 14 else "CPF", doc)

    if rascunho.ambiente == AmbienteNFe.HOMOLOGACAO:
        _sub_text(dest, "xNome", NOME_HOMOLOGACAO)
    else:
        _sub_text(dest, "xNome", destinatario.nome.strip())

    if destinatario.endereco is not None:
        _adicionar_endereco(dest, "enderDest", destinatario.endereco)

    ie = _limpar_ie(destinatario.inscricao_estadual)
    # 1=Contribuinte, 2=Isento, 9=Não contribuinte (obrigatório na NFC-e)
    if rascunho.modelo == ModeloDocumento.NFCE or not ie:
        _sub_text(dest, "indIEDest", "9")
    elif ie == "ISENTO":
        _sub_text(dest, "indIEDest", "2")
    else:
        _sub_text(dest, "indIEDest", "1")
        _sub_text(dest, "IE", ie)

    if destinatario.email:
        _sub_text(dest, "email", destinatario.email.strip())


def _adicionar_endereco(parent: etree._Element, tag: str, endereco: Endereco) -> None:
    ender = etree.SubElement(parent, f"{NS}{tag}")
    _sub_text(ender, "xLgr", endereco.logradouro.strip())
    _sub_text(ender, "nro", (endereco.numero or "S/N").strip())
    if endereco.complemento:
        _sub_text(ender, "xCpl", endereco.complemento.strip())
    _sub_text(ender, "xBairro", endereco.bairro.strip())
    _sub_text(ender, "cMun", endereco.codigo_municipio)
    _sub_text(ender, "xMun", endereco.municipio.strip())
    _sub_text(ender, "UF", endereco.uf.strip().upper())
    _sub_text(ender, "CEP", re.sub(r"\D", "", endereco.cep or "").zfill(8))
    _sub_text(ender, "cPais", "1058")
    _sub_text(ender, "xPais", "BRASIL")
    if endereco.telefone:
        _sub_text(ender, "fone", re.sub(r"\D", "", endereco.telefone))


def _adicionar_item(
    parent: etree._Element,
    n_item: int,
    item: ItemNFe,
    escrever_icms,
    valor_tributos: Decimal,
) -> None:
    """Grupo det: prod + imposto ([vTotTrib], ICMS, [IPI], PIS, COFINS)."""
    det = etree.SubElement(parent, f"{NS}det", nItem=str(n_item))

    prod = etree.SubElement(det, f"{NS}prod")
    _sub_text(prod, "cProd", item.codigo.strip())
    _sub_text(prod, "cEAN", "SEM GTIN")
    _sub_text(prod, "xProd", item.descricao.strip())
    _sub_text(prod, "NCM", re.sub(r"\D", "", item.ncm))
    _sub_text(prod, "CFOP", re.sub(r"\D", "", item.cfop))
    _sub_text(prod, "uCom", item.unidade)
    _sub_quantidade(prod, "qCom", item.quantidade)
    _sub_decimal(prod, "vUnCom", item.valor_unitario)
    _sub_decimal(prod, "vProd", item.valor_total)
    _sub_text(prod, "cEANTrib", "SEM GTIN")
    _sub_text(prod, "uTrib", item.unidade)
    _sub_quantidade(prod, "qTrib", item.quantidade)
    _sub_decimal(prod, "vUnTrib", item.valor_unitario)
    for tag, valor in (
        ("vFrete", item.valor_frete),
        ("vSeg", item.valor_seguro),
        ("vDesc", item.valor_desconto),
        ("vOutro", item.valor_outros),
    ):
        if decimal(valor) > 0:
            _sub_decimal(prod, tag, valor)
    _sub_text(prod, "indTot", "1")  # compõe o total da NF-e

    imposto = etree.SubElement(det, f"{NS}imposto")
    if valor_tributos > 0:
        _sub_decimal(imposto, "vTotTrib", valor_tributos)
    escrever_icms(etree.SubElement(imposto, f"{NS}ICMS"), item)
    if item.ipi is not None:
        _adicionar_ipi(imposto, item.ipi)
    _adicionar_pis_cofins(imposto, "PIS", item.pis)
    _adicionar_pis_cofins(imposto, "COFINS", item.cofins)


def _adicionar_totais(parent: etree._Element, totais: Totais) -> None:
    """Grupo total/ICMSTot; ST, FCP e II não são calculados."""
    total = etree.SubElement(parent, f"{NS}total")
    icms_tot = etree.SubElement(total, f"{NS}ICMSTot")
    zero = Decimal("0")
    for tag, valor in (
        ("vBC", totais.base_calculo_icms),
        ("vICMS", totais.valor_icms),
        ("vICMSDeson", zero),
        ("vFCP", zero),
        ("vBCST", zero),
        ("vST", zero),
        ("vFCPST", zero),
        ("vFCPSTRet", zero),
        ("vProd", totais.valor_produtos),
        ("vFrete", totais.valor_frete),
        ("vSeg", totais.valor_seguro),
        ("vDesc", totais.valor_desconto),
        ("vII", zero),
        ("vIPI", totais.valor_ipi),
        ("vIPIDevol", zero),
        ("vPIS", totais.valor_pis),
        ("vCOFINS", totais.valor_cofins),
        ("vOutro", totais.valor_outros),
        ("vNF", totais.valor_total),
    ):
        _sub_decimal(icms_tot, tag, valor)
    if totais.valor_tributos > 0:
        _sub_decimal(icms_tot, "vTotTrib", totais.valor_tributos)


def _adicionar_transporte(parent: etree._Element, rascunho: RascunhoNFe) -> None:
    """Grupo transp: modFrete + [transporta] + [veicTransp]."""
    transporte = rascunho.transporte
    transp = etree.SubElement(parent, f"{NS}transp")
    _sub_text(transp, "modFrete", str(int(transporte.modalidade)))

    transportadora = transporte.transportadora
    if transportadora is not None and transportadora.documento:
        transporta = etree.SubElement(transp, f"{NS}transporta")
        doc = _limpar_doc(transportadora.documento)
        _sub_text(transporta, "CNPJ" if len(doc) == 14 else "CPF", doc)
        _sub_text(transporta, "xNome", transportadora.nome.strip())
        if transportadora.inscricao_estadual:
            _sub_text(transporta, "IE", _limpar_ie(transportadora.inscricao_estadual))
        if transportadora.endereco:
            _sub_text(transporta, "xEnder", transportadora.endereco.strip())
        if transportadora.municipio:
            _sub_text(transporta, "xMun", transportadora.municipio.strip())
        if transportadora.uf:
            _sub_text(transporta, "UF", transportadora.uf.strip().upper())

    if transporte.placa:
        veiculo = etree.SubElement(transp, f"{NS}veicTransp")
        _sub_text(veiculo, "placa", re.sub(r"[^A-Z0-9]", "", transporte.placa.upper()))
        _sub_text(veiculo, "UF", transporte.uf_veiculo.strip().upper())


def _adicionar_pagamento(parent: etree._Element, rascunho: RascunhoNFe, totais: Totais) -> None:
    """Grupo pag: um único detPag à vista (ou a prazo) + vTroco na NFC-e."""
    pagamento = rascunho.pagamento
    pag = etree.SubElement(parent, f"{NS}pag")
    det_pag = etree.SubElement(pag, f"{NS}detPag")

    if str(pagamento.meio) == MeioPagamento.SEM_PAGAMENTO:
        valor = Decimal("0")
    elif pagamento.valor is None:
        valor = totais.valor_total
    else:
        valor = decimal(pagamento.valor)

    _sub_text(det_pag, "indPag", "1" if pagamento.a_prazo else "0")
    _sub_text(det_pag, "tPag", str(pagamento.meio))
    _sub_decimal(det_pag, "vPag", valor)

    if rascunho.modelo == ModeloDocumento.NFCE:
        _sub_decimal(pag, "vTroco", max(valor - totais.valor_total, Decimal("0")))


# ---------------------------------------------------------------------------
# Tributos
# ---------------------------------------------------------------------------


def _escritor_icms(regime: RegimeTributario):
    """Escolhe, uma vez por documento, o escritor do grupo ICMS do regime."""
    return _icms_simples if regime.simplificado else _icms_normal


def _icms_simples(icms: etree._Element, item: ItemNFe) -> None:
    """CSOSN do Simples Nacional."""
    csosn = item.icms.codigo
    grupo = _GRUPOS_CSOSN[csosn]
    elem = etree.SubElement(icms, f"{NS}{grupo}")
    _sub_text(elem, "orig", str(item.origem))
    _sub_text(elem, "CSOSN", csosn)

    if csosn == "101":
        _sub_decimal(elem, "pCredSN", item.icms.aliquota)
        _sub_decimal(elem, "vCredICMSSN", item.icms.valor)
    elif csosn == "900" and decimal(item.icms.base_calculo) > 0:
        _sub_base_aliquota_valor(elem, item.icms, "ICMS")


def _icms_normal(icms: etree._Element, item: ItemNFe) -> None:
    """CST do regime normal."""
    cst = item.icms.codigo
    grupo = _GRUPOS_CST[cst]
    elem = etree.SubElement(icms, f"{NS}{grupo}")
    _sub_text(elem, "orig", str(item.origem))
    _sub_text(elem, "CST", cst)

    if cst in ("00", "90"):
        _sub_base_aliquota_valor(elem, item.icms, "ICMS")


_GRUPOS_CSOSN = {
    "101": "ICMSSN101",
    "102": "ICMSSN102",
    "103": "ICMSSN102",
    "300": "ICMSSN102",
    "400": "ICMSSN102",
    "500": "ICMSSN500",
    "900": "ICMSSN900",
}

_GRUPOS_CST = {
    "00": "ICMS00",
    "40": "ICMS40",
    "41": "ICMS40",
    "50": "ICMS40",
    "60": "ICMS60",
    "90": "ICMS90",
}

_CST_IPI_TRIBUTADO = {"00", "49", "50", "99"}
_CST_PIS_COFINS_ALIQUOTA = {"01", "02"}
_CST_PIS_COFINS_NAO_TRIBUTADO = {"04", "05", "06", "07", "08", "09"}


def _adicionar_ipi(imposto: etree._Element, ipi: Imposto) -> None:
    elem = etree.SubElement(imposto, f"{NS}IPI")
    _sub_text(elem, "cEnq", "999")  # enquadramento genérico
    if ipi.codigo in _CST_IPI_TRIBUTADO:
        trib = etree.SubElement(elem, f"{NS}IPITrib")
        _sub_text(trib, "CST", ipi.codigo)
        _sub_decimal(trib, "vBC", ipi.base_calculo)
        _sub_decimal(trib, "pIPI", ipi.aliquota)
        _sub_decimal(trib, "vIPI", ipi.valor)
    else:
        nt = etree.SubElement(elem, f"{NS}IPINT")
        _sub_text(nt, "CST", ipi.codigo)


def _adicionar_pis_cofins(imposto: etree._Element, tributo: str, dados: Imposto) -> None:
    """PIS e COFINS têm a mesma estrutura: Aliq, NT ou Outr."""
    elem = etree.SubElement(imposto, f"{NS}{tributo}")
    if dados.codigo in _CST_PIS_COFINS_ALIQUOTA:
        grupo = etree.SubElement(elem, f"{NS}{tributo}Aliq")
    elif dados.codigo in _CST_PIS_COFINS_NAO_TRIBUTADO:
        grupo = etree.SubElement(elem, f"{NS}{tributo}NT")
        _sub_text(grupo, "CST", dados.codigo)
        return
    else:
        grupo = etree.SubElement(elem, f"{NS}{tributo}Outr")

    _sub_text(grupo, "CST", dados.codigo)
    _sub_decimal(grupo, "vBC", dados.base_calculo)
    _sub_decimal(grupo, f"p{tributo}", dados.aliquota)
    _sub_decimal(grupo, f"v{tributo}", dados.valor)


def _sub_base_aliquota_valor(elem: etree._Element, dados: Imposto, tributo: str) -> None:
    _sub_text(elem, "modBC", str(dados.modalidade_bc))
    _sub_decimal(elem, "vBC", dados.base_calculo)
    _sub_decimal(elem, f"p{tributo}", dados.aliquota)
    _sub_decimal(elem, f"v{tributo}", dados.valor)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def data_brt(data: datetime) -> datetime:
    """dhEmi no fuso de Brasília; datas sem fuso já são consideradas BRT."""
    if data.tzinfo is None:
        return data.replace(tzinfo=BRT, microsecond=0)
    return data.astimezone(BRT).replace(microsecond=0)


def _indicador_destino(rascunho: RascunhoNFe) -> str:
    """1=Operação interna, 2=Interestadual."""
    endereco_dest = rascunho.destinatario.endereco
    if endereco_dest is None:
        return "1"
    mesma_uf = endereco_dest.uf.strip().upper() == rascunho.emitente.endereco.uf.strip().upper()
    return "1" if mesma_uf else "2"


def _indicador_consumidor_final(rascunho: RascunhoNFe) -> str:
    if rascunho.modelo == ModeloDocumento.NFCE:
        return "1"
    return "1" if len(_limpar_doc(rascunho.destinatario.documento)) == 11 else "0"


def _limpar_doc(doc: str | None) -> str:
    """Remove pontuação de CNPJ/CPF."""
    return re.sub(r"\D", "", doc or "")


def _limpar_ie(ie: str | None) -> str:
    return re.sub(r"[.\-/\s]", "", ie or "").upper()


def _sub_text(parent: etree._Element, tag: str, texto: str) -> etree._Element:
    """Cria sub-elemento com texto."""
    elem = etree.SubElement(parent, f"{NS}{tag}")
    elem.text = texto
    return elem


def _sub_decimal(
    parent: etree._Element,
    tag: str,
    valor: Decimal | None,
) -> etree._Element:
    """Cria sub-elemento com valor decimal formatado (2 casas, arredondamento comercial)."""
    elem = etree.SubElement(parent, f"{NS}{tag}")
    elem.text = f"{decimal(valor).quantize(_DUAS_CASAS, rounding=ROUND_HALF_UP):.2f}"
    return elem


def _sub_quantidade(parent: etree._Element, tag: str, valor: Decimal) -> etree._Element:
    """Quantidade com 4 casas decimais."""
    elem = etree.SubElement(parent, f"{NS}{tag}")
    elem.text = f"{decimal(valor).quantize(_QUATRO_CASAS, rounding=ROUND_HALF_UP):.4f}"
    return elem
