"""
Certificado digital ICP-Brasil tipo A1 (.pfx/.p12).

Decodifica o PKCS#12 recebido em memória e devolve uma ``IdentidadeAssinatura``:
um handle opaco que assina digests SHA-1 sem expor os bytes da chave privada.
Nenhum acesso a disco ou rede; quem guarda o arquivo é o chamador.
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from datetime import timezone as dt_timezone

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID
from django.conf import settings
from django.utils import timezone

from caixa_nfe.nfe.exceptions import (
    ArquivoMalformadoError,
    CertificadoAusenteError,
    ChaveAssinaturaRejeitadaError,
    ChavePrivadaAusenteError,
    SenhaInvalidaError,
)

logger = logging.getLogger(__name__)

# OID ICP-Brasil do CNPJ da pessoa jurídica titular (otherName da SAN)
OID_CNPJ_ICP_BRASIL = x509.ObjectIdentifier("2.16.76.1.3.3")

_RE_CNPJ_CN = re.compile(r":(\d{14})\b")
_RE_CNPJ_BYTES = re.compile(rb"\d{14}")


class IdentidadeAssinatura:
    """
    Chave privada + certificado X.509 extraídos de um A1.

    A chave fica num slot privado e só é usada por ``assinar_digest``;
    o objeto não pode ser serializado (pickle/copy) nem tem a chave no repr.
    """

    __slots__ = ("_chave", "_certificado", "cnpj", "nome", "valido_de", "valido_ate")

    def __init__(self, chave, certificado: x509.Certificate):
        self._chave = chave
        self._certificado = certificado
        self.cnpj = _extrair_cnpj(certificado)
        self.nome = _extrair_nome(certificado)
        self.valido_de = certificado.not_valid_before_utc
        self.valido_ate = certificado.not_valid_after_utc

    @property
    def numero_serie(self) -> str:
        return format(self._certificado.serial_number, "x").upper()

    @property
    def emissor(self) -> str:
        return self._certificado.issuer.rfc4514_string()

    def certificado_der(self) -> bytes:
        return self._certificado.public_bytes(serialization.Encoding.DER)

    def assinar_digest(self, digest: bytes) -> bytes:
        """Assina um digest SHA-1 já calculado (RSA PKCS#1 v1.5)."""
        if not isinstance(self._chave, rsa.RSAPrivateKey):
            raise ChaveAssinaturaRejeitadaError(
                f"Chave do certificado é {type(self._chave).__name__}; "
                "o leiaute da NF-e exige RSA-SHA1"
            )
        try:
            return self._chave.sign(digest, padding.PKCS1v15(), Prehashed(hashes.SHA1()))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ChaveAssinaturaRejeitadaError(f"Chave rejeitou a assinatura RSA-SHA1: {e}") from e

    def __repr__(self):
        return f"<IdentidadeAssinatura cnpj={self.cnpj or '-'} valido_ate={self.valido_ate:%Y-%m-%d}>"

    def __reduce__(self):
        raise TypeError("IdentidadeAssinatura não pode ser serializada")

    def __copy__(self):
        raise TypeError("IdentidadeAssinatura não pode ser copiada")

    def __deepcopy__(self, memo):
        raise TypeError("IdentidadeAssinatura não pode ser copiada")


@dataclass(frozen=True)
class SituacaoCertificado:
    """Resumo da validade do certificado numa data."""

    valido: bool
    dias_restantes: int
    avisos: list[str] = field(default_factory=list)


def carregar_certificado(pfx: bytes, senha: str) -> IdentidadeAssinatura:
    """
    Carrega certificado PKCS#12 (A1).

    Raises:
        ArquivoMalformadoError: buffer não é um PFX DER.
        SenhaInvalidaError: MAC/decifragem falhou.
        ChavePrivadaAusenteError: sem key bag.
        CertificadoAusenteError: sem cert bag.
    """
    if not _parece_pfx(pfx):
        raise ArquivoMalformadoError("Conteúdo não é um arquivo PKCS#12 (.pfx/.p12) válido")

    try:
        # Ignora warning BER/DER de PFX gerados por ferramentas antigas
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=UserWarning)
            chave, certificado, _cadeia = pkcs12.load_key_and_certificates(
                pfx,
                (senha or "").encode("utf-8"),
            )
    except UnsupportedAlgorithm as e:
        raise ArquivoMalformadoError(f"Algoritmo do PKCS#12 não suportado: {e}") from e
    except ValueError as e:
        raise SenhaInvalidaError("Senha incorreta ou PKCS#12 corrompido") from e

    if chave is None:
        raise ChavePrivadaAusenteError("Certificado A1 inválido: chave privada ausente")
    if certificado is None:
        raise CertificadoAusenteError("Certificado A1 inválido: certificado ausente")

    identidade = IdentidadeAssinatura(chave, certificado)
    logger.debug(
        "Certificado carregado (cnpj=%s, valido_ate=%s)",
        identidade.cnpj or "-",
        identidade.valido_ate.date(),
    )
    return identidade


def dias_para_expirar(identidade: IdentidadeAssinatura, agora: datetime | None = None) -> int:
    """Dias inteiros até ``valido_ate``; negativo quando já expirou."""
    return (identidade.valido_ate - _agora(agora)).days


def certificado_valido(identidade: IdentidadeAssinatura, agora: datetime | None = None) -> bool:
    agora = _agora(agora)
    return identidade.valido_de <= agora <= identidade.valido_ate


def verificar_situacao(
    identidade: IdentidadeAssinatura,
    agora: datetime | None = None,
) -> SituacaoCertificado:
    """Validade + avisos de vencimento próximo e de titular não identificado."""
    agora = _agora(agora)
    dias = dias_para_expirar(identidade, agora)
    valido = certificado_valido(identidade, agora)
    avisos = []

    if agora < identidade.valido_de:
        avisos.append(f"Certificado ainda não é válido (início em {identidade.valido_de:%d/%m/%Y})")
    elif dias < 0:
        avisos.append(f"Certificado expirado em {identidade.valido_ate:%d/%m/%Y}")
    elif dias <= settings.NFE_CONFIG["DIAS_ALERTA_VENCIMENTO"]:
        avisos.append(f"Certificado expira em {dias} dias ({identidade.valido_ate:%d/%m/%Y})")

    if not identidade.cnpj:
        avisos.append("CNPJ do titular não identificado no certificado (não é e-CNPJ?)")

    return SituacaoCertificado(valido=valido, dias_restantes=dias, avisos=avisos)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _agora(agora: datetime | None) -> datetime:
    if agora is None:
        return timezone.now()
    if timezone.is_naive(agora):
        return timezone.make_aware(agora, dt_timezone.utc)
    return agora


def _parece_pfx(dados: bytes) -> bool:
    """
    Confere o cabeçalho DER do PFX: SEQUENCE { INTEGER 3, ... }.

    Aceita comprimento indefinido (BER) emitido por alguns exportadores.
    """
    if not dados or len(dados) < 5 or dados[0] != 0x30:
        return False

    tamanho = dados[1]
    pos = 2
    if tamanho & 0x80:
        n_bytes = tamanho & 0x7F
        if n_bytes:
            if n_bytes > 4 or len(dados) < pos + n_bytes:
                return False
            corpo = int.from_bytes(dados[pos : pos + n_bytes], "big")
            pos += n_bytes
            if pos + corpo > len(dados):
                return False
    elif pos + tamanho > len(dados):
        return False

    return dados[pos : pos + 3] == b"\x02\x01\x03"


def _extrair_nome(certificado: x509.Certificate) -> str:
    atributos = certificado.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not atributos:
        return ""
    # e-CNPJ: "RAZAO SOCIAL:11222333000181"
    return str(atributos[0].value).split(":")[0].strip()


def _extrair_cnpj(certificado: x509.Certificate) -> str:
    for atributo in certificado.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        encontrado = _RE_CNPJ_CN.search(str(atributo.value))
        if encontrado:
            return encontrado.group(1)

    try:
        san = certificado.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return ""

    for nome in san.value.get_values_for_type(x509.OtherName):
        if nome.type_id == OID_CNPJ_ICP_BRASIL:
            encontrado = _RE_CNPJ_BYTES.search(nome.value)
            if encontrado:
                return encontrado.group(0).decode("ascii")
    return ""
