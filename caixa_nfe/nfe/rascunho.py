"""
Rascunho da NF-e: dados de negócio fornecidos pelas camadas de venda/estoque.

O núcleo trata o rascunho como somente leitura.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from caixa_nfe.nfe.choices import (
    AmbienteNFe,
    MeioPagamento,
    ModalidadeFrete,
    ModeloDocumento,
    RegimeTributario,
)


@dataclass
class Endereco:
    logradouro: str
    numero: str
    bairro: str
    codigo_municipio: str
    municipio: str
    uf: str
    cep: str
    complemento: str = ""
    telefone: str = ""


@dataclass
class Emitente:
    cnpj: str
    razao_social: str
    inscricao_estadual: str
    endereco: Endereco
    regime_tributario: RegimeTributario = RegimeTributario.SIMPLES_NACIONAL
    nome_fantasia: str = ""


@dataclass
class Destinatario:
    documento: str
    nome: str
    endereco: Endereco | None = None
    inscricao_estadual: str = ""
    email: str = ""


@dataclass
class Imposto:
    """Um tributo do item: código (CST/CSOSN) + alíquota + base + valor."""

    codigo: str
    aliquota: Decimal = Decimal("0")
    base_calculo: Decimal = Decimal("0")
    valor: Decimal = Decimal("0")
    modalidade_bc: int = 3


@dataclass
class ItemNFe:
    codigo: str
    descricao: str
    ncm: str
    cfop: str
    quantidade: Decimal
    valor_unitario: Decimal
    valor_total: Decimal
    icms: Imposto
    pis: Imposto
    cofins: Imposto
    ipi: Imposto | None = None
    unidade: str = "UN"
    origem: int = 0
    valor_frete: Decimal = Decimal("0")
    valor_seguro: Decimal = Decimal("0")
    valor_desconto: Decimal = Decimal("0")
    valor_outros: Decimal = Decimal("0")
    # Lei 12.741/2012; None = soma dos tributos do próprio item
    valor_tributos: Decimal | None = None


@dataclass
class Totais:
    """Totais do documento (ICMSTot)."""

    base_calculo_icms: Decimal = Decimal("0")
    valor_icms: Decimal = Decimal("0")
    valor_produtos: Decimal = Decimal("0")
    valor_frete: Decimal = Decimal("0")
    valor_seguro: Decimal = Decimal("0")
    valor_desconto: Decimal = Decimal("0")
    valor_ipi: Decimal = Decimal("0")
    valor_pis: Decimal = Decimal("0")
    valor_cofins: Decimal = Decimal("0")
    valor_outros: Decimal = Decimal("0")
    valor_total: Decimal = Decimal("0")
    valor_tributos: Decimal = Decimal("0")


@dataclass
class Transportadora:
    documento: str
    nome: str
    inscricao_estadual: str = ""
    endereco: str = ""
    municipio: str = ""
    uf: str = ""


@dataclass
class Transporte:
    modalidade: int = ModalidadeFrete.SEM_FRETE
    transportadora: Transportadora | None = None
    placa: str = ""
    uf_veiculo: str = ""


@dataclass
class Pagamento:
    meio: str = MeioPagamento.DINHEIRO
    a_prazo: bool = False
    valor: Decimal | None = None  # None = valor total da nota


@dataclass
class RascunhoNFe:
    emitente: Emitente
    destinatario: Destinatario
    itens: list[ItemNFe]
    numero: int
    data_emissao: datetime
    serie: str = "1"
    modelo: ModeloDocumento = ModeloDocumento.NFE
    ambiente: AmbienteNFe | None = None  # None = NFE_CONFIG["AMBIENTE"]
    natureza_operacao: str = "VENDA DE MERCADORIA"
    tipo_emissao: int = 1
    finalidade: int = 1
    presenca: int = 1
    totais: Totais | None = None
    transporte: Transporte = field(default_factory=Transporte)
    pagamento: Pagamento = field(default_factory=Pagamento)
    informacoes_adicionais: str = ""

    @property
    def regime(self) -> RegimeTributario:
        return RegimeTributario(str(self.emitente.regime_tributario))


def decimal(valor) -> Decimal:
    """Converte int/float/str em Decimal sem herdar o erro binário do float."""
    if valor is None:
        return Decimal("0")
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


# Códigos cujo grupo ICMS informa vBC/vICMS (entram no ICMSTot)
CST_COM_BASE = {"00", "90"}
CSOSN_COM_BASE = {"900"}


def icms_compoe_base(item: ItemNFe, regime: RegimeTributario) -> bool:
    codigos = CSOSN_COM_BASE if regime.simplificado else CST_COM_BASE
    return item.icms.codigo in codigos


def tributos_aproximados(item: ItemNFe, regime: RegimeTributario) -> Decimal:
    """Valor aproximado dos tributos do item (vTotTrib, Lei 12.741/2012)."""
    if item.valor_tributos is not None:
        return decimal(item.valor_tributos)
    total = decimal(item.pis.valor) + decimal(item.cofins.valor)
    if icms_compoe_base(item, regime):
        total += decimal(item.icms.valor)
    if item.ipi is not None:
        total += decimal(item.ipi.valor)
    return total


def calcular_totais(rascunho: RascunhoNFe) -> Totais:
    """Agrega os valores dos itens no grupo ICMSTot."""
    regime = rascunho.regime
    totais = Totais()
    for item in rascunho.itens:
        if icms_compoe_base(item, regime):
            totais.base_calculo_icms += decimal(item.icms.base_calculo)
            totais.valor_icms += decimal(item.icms.valor)
        totais.valor_produtos += decimal(item.valor_total)
        totais.valor_frete += decimal(item.valor_frete)
        totais.valor_seguro += decimal(item.valor_seguro)
        totais.valor_desconto += decimal(item.valor_desconto)
        totais.valor_outros += decimal(item.valor_outros)
        if item.ipi is not None:
            totais.valor_ipi += decimal(item.ipi.valor)
        totais.valor_pis += decimal(item.pis.valor)
        totais.valor_cofins += decimal(item.cofins.valor)
        totais.valor_tributos += tributos_aproximados(item, regime)

    totais.valor_total = (
        totais.valor_produtos
        - totais.valor_desconto
        + totais.valor_frete
        + totais.valor_seguro
        + totais.valor_outros
        + totais.valor_ipi
    )
    return totais
