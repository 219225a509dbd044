"""
Pipeline de emissão de NF-e.

Fluxo:
1. Validar e montar o XML (xml_builder)
2. Conferir a validade do certificado A1
3. Assinar o infNFe (assinatura)
4. Entregar ao transmissor configurado (backends)
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from caixa_nfe.core.logging_filters import documento_context
from caixa_nfe.nfe.assinatura import assinar_documento
from caixa_nfe.nfe.backends import get_backend
from caixa_nfe.nfe.backends.base import BaseTransmissorNFe
from caixa_nfe.nfe.certificado import (
    IdentidadeAssinatura,
    carregar_certificado,
    certificado_valido,
)
from caixa_nfe.nfe.choices import StatusNFe
from caixa_nfe.nfe.exceptions import CertificadoExpiradoError, NFeError, RascunhoInvalidoError
from caixa_nfe.nfe.rascunho import RascunhoNFe
from caixa_nfe.nfe.xml_builder import NFeMontada, construir_nfe, data_brt

logger = logging.getLogger(__name__)


@dataclass
class ResultadoEmissao:
    """Resultado de uma tentativa de emissão."""

    sucesso: bool
    status: StatusNFe = StatusNFe.RASCUNHO
    chave_acesso: str | None = None
    xml_assinado: str | None = None
    protocolo: str | None = None
    data_autorizacao: datetime | None = None
    mensagem: str = ""
    erros: list = field(default_factory=list)


def preparar_nfe(
    rascunho: RascunhoNFe,
    identidade: IdentidadeAssinatura,
    codigo_numerico: str | None = None,
) -> NFeMontada:
    """
    Monta e assina a NF-e; devolve a montagem com o XML já assinado.

    Raises:
        RascunhoInvalidoError: rascunho violou regras de negócio.
        CertificadoExpiradoError: certificado fora da validade.
        AssinaturaError: falha ao assinar.
    """
    # mesma convenção do dhEmi: data sem fuso é horário de Brasília
    if not certificado_valido(identidade, data_brt(rascunho.data_emissao)):
        raise CertificadoExpiradoError(
            f"Certificado válido de {identidade.valido_de:%d/%m/%Y} a "
            f"{identidade.valido_ate:%d/%m/%Y}; fora da validade na data de emissão"
        )

    montada = construir_nfe(rascunho, codigo_numerico=codigo_numerico)

    with documento_context(chave_acesso=montada.chave_acesso, cnpj_emitente=rascunho.emitente.cnpj):
        if identidade.cnpj and identidade.cnpj[:8] != montada.chave_acesso[6:14]:
            # SEFAZ rejeita quando a raiz do CNPJ do certificado difere da do emitente
            logger.warning(
                "Raiz do CNPJ do certificado (%s) difere da do emitente",
                identidade.cnpj[:8],
            )

        xml_assinado = assinar_documento(identidade, montada.xml, montada.id_elemento)
        logger.info("NF-e %s assinada", montada.chave_acesso)
    return replace(montada, xml=xml_assinado)


def emitir_nfe(
    rascunho: RascunhoNFe,
    pfx: bytes,
    senha: str,
    backend: BaseTransmissorNFe | None = None,
    codigo_numerico: str | None = None,
) -> ResultadoEmissao:
    """
    Emite a NF-e: carrega o certificado → monta → assina → transmite.

    Erros de dado/certificado viram ``ResultadoEmissao(sucesso=False)``;
    nada é retentado.
    """
    with documento_context(chave_acesso="-", cnpj_emitente=rascunho.emitente.cnpj):
        try:
            identidade = carregar_certificado(pfx, senha)
            montada = preparar_nfe(rascunho, identidade, codigo_numerico=codigo_numerico)

            transmissor = backend or get_backend()
            resposta = transmissor.transmitir(montada.xml)

            if not resposta.sucesso:
                logger.warning("NF-e %s não autorizada: %s", montada.chave_acesso, resposta.mensagem)
            else:
                logger.info("NF-e %s autorizada (protocolo %s)", montada.chave_acesso, resposta.protocolo)

            return ResultadoEmissao(
                sucesso=resposta.sucesso,
                status=resposta.status,
                chave_acesso=montada.chave_acesso,
                xml_assinado=montada.xml,
                protocolo=resposta.protocolo,
                data_autorizacao=resposta.data_autorizacao,
                mensagem=resposta.mensagem,
            )

        except RascunhoInvalidoError as e:
            return ResultadoEmissao(sucesso=False, mensagem=str(e), erros=e.erros)
        except NFeError as e:
            logger.warning("Emissão interrompida: %s", e)
            return ResultadoEmissao(sucesso=False, mensagem=str(e))
        except Exception as e:
            logger.exception("Erro inesperado ao emitir NF-e %s", rascunho.numero)
            return ResultadoEmissao(sucesso=False, mensagem=f"Erro inesperado: {e}")
