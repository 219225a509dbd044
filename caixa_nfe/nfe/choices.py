"""
Enumerações do leiaute NF-e 4.00.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AmbienteNFe(models.TextChoices):
    PRODUCAO = "1", _("Produção")
    HOMOLOGACAO = "2", _("Homologação")


class ModeloDocumento(models.TextChoices):
    NFE = "55", _("NF-e")
    NFCE = "65", _("NFC-e")


class RegimeTributario(models.TextChoices):
    """Código de Regime Tributário (CRT) do emitente."""

    SIMPLES_NACIONAL = "1", _("Simples Nacional")
    SIMPLES_EXCESSO_SUBLIMITE = "2", _("Simples Nacional - excesso de sublimite")
    REGIME_NORMAL = "3", _("Regime Normal")

    @property
    def simplificado(self) -> bool:
        return self in (
            RegimeTributario.SIMPLES_NACIONAL,
            RegimeTributario.SIMPLES_EXCESSO_SUBLIMITE,
        )


class ModalidadeFrete(models.IntegerChoices):
    EMITENTE = 0, _("Contratação por conta do remetente (CIF)")
    DESTINATARIO = 1, _("Contratação por conta do destinatário (FOB)")
    TERCEIROS = 2, _("Contratação por conta de terceiros")
    PROPRIO_REMETENTE = 3, _("Transporte próprio por conta do remetente")
    PROPRIO_DESTINATARIO = 4, _("Transporte próprio por conta do destinatário")
    SEM_FRETE = 9, _("Sem ocorrência de transporte")


class MeioPagamento(models.TextChoices):
    DINHEIRO = "01", _("Dinheiro")
    CHEQUE = "02", _("Cheque")
    CARTAO_CREDITO = "03", _("Cartão de Crédito")
    CARTAO_DEBITO = "04", _("Cartão de Débito")
    CREDITO_LOJA = "05", _("Crédito Loja")
    BOLETO = "15", _("Boleto Bancário")
    PIX = "17", _("Pagamento Instantâneo (PIX)")
    SEM_PAGAMENTO = "90", _("Sem pagamento")
    OUTROS = "99", _("Outros")


class StatusNFe(models.TextChoices):
    """Status da NF-e no ciclo de vida controlado pelo transmissor."""

    RASCUNHO = "RASCUNHO", _("Rascunho")
    ENVIADA = "ENVIADA", _("Enviada")
    AUTORIZADA = "AUTORIZADA", _("Autorizada")
    REJEITADA = "REJEITADA", _("Rejeitada")
    CANCELADA = "CANCELADA", _("Cancelada")


TRANSICOES_STATUS = {
    StatusNFe.RASCUNHO: {StatusNFe.ENVIADA},
    StatusNFe.ENVIADA: {StatusNFe.AUTORIZADA, StatusNFe.REJEITADA},
    StatusNFe.REJEITADA: {StatusNFe.ENVIADA},
    StatusNFe.AUTORIZADA: {StatusNFe.CANCELADA},
    StatusNFe.CANCELADA: set(),
}


def pode_transitar(de: str, para: str) -> bool:
    """Indica se a mudança de status ``de`` → ``para`` é permitida."""
    return StatusNFe(para) in TRANSICOES_STATUS.get(StatusNFe(de), set())
