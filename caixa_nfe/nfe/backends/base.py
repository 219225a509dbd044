"""
Interface do transmissor de NF-e.

O núcleo entrega o XML assinado; envio SOAP à SEFAZ, consulta e
cancelamento ficam a cargo das implementações concretas.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from caixa_nfe.nfe.choices import StatusNFe


@dataclass
class ResultadoTransmissao:
    """Resultado do envio de uma NF-e assinada."""

    sucesso: bool
    status: StatusNFe = StatusNFe.ENVIADA
    chave_acesso: str | None = None
    protocolo: str | None = None
    data_autorizacao: datetime | None = None
    xml_retorno: str | None = None
    mensagem: str = ""


@dataclass
class ResultadoConsulta:
    """Resultado da consulta de situação pela chave de acesso."""

    sucesso: bool
    status: StatusNFe | None = None
    protocolo: str | None = None
    xml_retorno: str | None = None
    mensagem: str = ""


@dataclass
class ResultadoCancelamento:
    """Resultado do evento de cancelamento."""

    sucesso: bool
    status: StatusNFe | None = None
    protocolo: str | None = None
    mensagem: str = ""


class BaseTransmissorNFe(ABC):
    """
    Interface abstrata dos transmissores.
    Todo transmissor implementa transmitir, consultar e cancelar.
    """

    @abstractmethod
    def transmitir(self, nfe_assinada: str) -> ResultadoTransmissao:
        """Envia a NF-e assinada para autorização."""

    @abstractmethod
    def consultar(self, chave_acesso: str) -> ResultadoConsulta:
        """Consulta a situação da NF-e."""

    @abstractmethod
    def cancelar(self, chave_acesso: str, protocolo: str, justificativa: str) -> ResultadoCancelamento:
        """Cancela uma NF-e autorizada."""
