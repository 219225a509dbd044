"""
Assinatura digital XML (XMLDSIG) para NF-e/NFC-e.

Assinatura enveloped RSA-SHA1 sobre o elemento identificado pelo atributo
``Id`` (normalmente ``<infNFe>``), no formato exigido pela SEFAZ:

1. localizar o elemento e serializá-lo;
2. DigestValue = base64(SHA1(canonicalizar(elemento)));
3. montar SignedInfo (C14N, RSA-SHA1, Reference #Id, SHA-1);
4. canonicalizar SignedInfo e calcular SHA1;
5. SignatureValue = base64(RSA PKCS#1 v1.5 sobre o digest);
6. X509Certificate = base64(DER do certificado).

A ``<Signature>`` resultante é inserida no XML original, logo após o
fechamento do elemento assinado. O texto canonicalizado serve só para hash.
"""

import base64
import hashlib
import logging
import re
from dataclasses import dataclass

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from lxml import etree

from caixa_nfe.nfe.canonicalizacao import ALGORITMO_C14N, canonicalizar
from caixa_nfe.nfe.certificado import IdentidadeAssinatura
from caixa_nfe.nfe.exceptions import (
    DocumentoJaAssinadoError,
    ElementoNaoEncontradoError,
    XMLInvalidoError,
)

logger = logging.getLogger(__name__)

NS_DS = "http://www.w3.org/2000/09/xmldsig#"
ALGORITMO_RSA_SHA1 = "http://www.w3.org/2000/09/xmldsig#rsa-sha1"
ALGORITMO_SHA1 = "http://www.w3.org/2000/09/xmldsig#sha1"
ALGORITMO_ENVELOPED = "http://www.w3.org/2000/09/xmldsig#enveloped-signature"

# Tags vazias escritas com fechamento explícito: é a forma que a C14N
# produz, então o texto canonicalizado coincide com o do verificador.
_SIGNED_INFO = (
    f'<SignedInfo xmlns="{NS_DS}">'
    f'<CanonicalizationMethod Algorithm="{ALGORITMO_C14N}"></CanonicalizationMethod>'
    f'<SignatureMethod Algorithm="{ALGORITMO_RSA_SHA1}"></SignatureMethod>'
    '<Reference URI="#{id_elemento}">'
    "<Transforms>"
    f'<Transform Algorithm="{ALGORITMO_ENVELOPED}"></Transform>'
    f'<Transform Algorithm="{ALGORITMO_C14N}"></Transform>'
    "</Transforms>"
    f'<DigestMethod Algorithm="{ALGORITMO_SHA1}"></DigestMethod>'
    "<DigestValue>{digest_value}</DigestValue>"
    "</Reference>"
    "</SignedInfo>"
)

_RE_SIGNED_INFO = re.compile(r"<SignedInfo\b.*?</SignedInfo>", re.DOTALL)


@dataclass(frozen=True)
class BlocoAssinatura:
    """Componentes da ``<Signature>`` calculados para um documento."""

    signed_info: str
    digest_value: str
    signature_value: str
    certificado_base64: str

    def to_xml(self) -> str:
        return (
            f'<Signature xmlns="{NS_DS}">'
            f"{self.signed_info}"
            f"<SignatureValue>{self.signature_value}</SignatureValue>"
            "<KeyInfo><X509Data>"
            f"<X509Certificate>{self.certificado_base64}</X509Certificate>"
            "</X509Data></KeyInfo>"
            "</Signature>"
        )


def assinar(
    identidade: IdentidadeAssinatura,
    documento_xml: str,
    id_elemento: str,
) -> BlocoAssinatura:
    """
    Calcula a assinatura do elemento ``Id=id_elemento`` de ``documento_xml``.

    Raises:
        XMLInvalidoError: documento não é XML bem formado.
        ElementoNaoEncontradoError: nenhum elemento com o Id.
        DocumentoJaAssinadoError: já existe Signature para o Id.
        ChaveAssinaturaRejeitadaError: chave não suporta RSA-SHA1.
    """
    raiz = _parse(documento_xml)
    if _referencias_existentes(raiz, id_elemento):
        raise DocumentoJaAssinadoError(f"Documento já possui assinatura para #{id_elemento}")

    digest_value = _digest_elemento(_localizar(raiz, id_elemento))

    signed_info = _SIGNED_INFO.format(id_elemento=id_elemento, digest_value=digest_value)
    digest_signed_info = hashlib.sha1(canonicalizar(signed_info).encode("utf-8")).digest()
    signature_value = base64.b64encode(identidade.assinar_digest(digest_signed_info)).decode("ascii")
    certificado_base64 = base64.b64encode(identidade.certificado_der()).decode("ascii")

    logger.debug("XML assinado com sucesso (ref: #%s)", id_elemento)
    return BlocoAssinatura(
        signed_info=signed_info,
        digest_value=digest_value,
        signature_value=signature_value,
        certificado_base64=certificado_base64,
    )


def inserir_assinatura(documento_xml: str, id_elemento: str, bloco: BlocoAssinatura) -> str:
    """
    Insere ``<Signature>`` logo após o fechamento do elemento assinado.

    Opera sobre o texto original (não canonicalizado).
    """
    elemento = _localizar(_parse(documento_xml), id_elemento)
    qname = etree.QName(elemento)
    tag = f"{elemento.prefix}:{qname.localname}" if elemento.prefix else qname.localname
    fechamento = f"</{tag}>"

    inicio = documento_xml.find(f'Id="{id_elemento}"')
    if inicio < 0:
        inicio = documento_xml.find(f"Id='{id_elemento}'")
    pos = documento_xml.find(fechamento, max(inicio, 0))
    if pos < 0:
        raise ElementoNaoEncontradoError(f"Tag de fechamento {fechamento} não encontrada no XML")

    fim = pos + len(fechamento)
    return documento_xml[:fim] + bloco.to_xml() + documento_xml[fim:]


def assinar_documento(identidade: IdentidadeAssinatura, documento_xml: str, id_elemento: str) -> str:
    """Assina e devolve o documento com a ``<Signature>`` inserida."""
    bloco = assinar(identidade, documento_xml, id_elemento)
    return inserir_assinatura(documento_xml, id_elemento, bloco)


def calcular_digest(documento_xml: str, id_elemento: str) -> str:
    """DigestValue (base64 SHA-1) do elemento, aplicando a transformação enveloped."""
    return _digest_elemento(_localizar(_parse(documento_xml), id_elemento))


def verificar_assinatura(documento_assinado: str) -> bool:
    """
    Confere DigestValue e SignatureValue da primeira ``<Signature>``.

    Usa a chave pública do X509Certificate embutido; não valida a cadeia.
    """
    raiz = _parse(documento_assinado)
    ns = {"ds": NS_DS}
    assinatura = raiz.find(".//ds:Signature", ns)
    if assinatura is None:
        logger.debug("Documento sem <Signature>")
        return False

    referencia = assinatura.find("ds:SignedInfo/ds:Reference", ns)
    digest_informado = assinatura.findtext("ds:SignedInfo/ds:Reference/ds:DigestValue", namespaces=ns)
    signature_value = assinatura.findtext("ds:SignatureValue", namespaces=ns)
    certificado_b64 = assinatura.findtext("ds:KeyInfo/ds:X509Data/ds:X509Certificate", namespaces=ns)
    if referencia is None or not digest_informado or not signature_value or not certificado_b64:
        return False

    id_elemento = (referencia.get("URI") or "").lstrip("#")
    try:
        if calcular_digest(documento_assinado, id_elemento) != digest_informado.strip():
            logger.info("DigestValue não confere para #%s", id_elemento)
            return False
    except ElementoNaoEncontradoError:
        return False

    encontrado = _RE_SIGNED_INFO.search(documento_assinado)
    if encontrado is None:
        return False
    digest_signed_info = hashlib.sha1(canonicalizar(encontrado.group(0)).encode("utf-8")).digest()

    certificado = x509.load_der_x509_certificate(base64.b64decode(certificado_b64))
    chave_publica = certificado.public_key()
    if not isinstance(chave_publica, rsa.RSAPublicKey):
        return False
    try:
        chave_publica.verify(
            base64.b64decode(signature_value),
            digest_signed_info,
            padding.PKCS1v15(),
            Prehashed(hashes.SHA1()),
        )
    except InvalidSignature:
        logger.info("SignatureValue inválido para #%s", id_elemento)
        return False
    return True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse(documento_xml: str) -> etree._Element:
    if isinstance(documento_xml, str):
        documento_xml = documento_xml.encode("utf-8")
    parser = etree.XMLParser(
        remove_blank_text=False,
        resolve_entities=False,
        no_network=True,
    )
    try:
        return etree.fromstring(documento_xml, parser)
    except etree.XMLSyntaxError as e:
        raise XMLInvalidoError(f"Erro ao fazer parse do XML: {e}") from e


def _localizar(raiz: etree._Element, id_elemento: str) -> etree._Element:
    encontrados = raiz.xpath("//*[@Id=$id]", id=id_elemento)
    if not encontrados:
        raise ElementoNaoEncontradoError(f'Elemento com Id="{id_elemento}" não encontrado')
    return encontrados[0]


def _referencias_existentes(raiz: etree._Element, id_elemento: str) -> list:
    return raiz.xpath(
        "//ds:Signature/ds:SignedInfo/ds:Reference[@URI=$uri]",
        namespaces={"ds": NS_DS},
        uri=f"#{id_elemento}",
    )


def _digest_elemento(elemento: etree._Element) -> str:
    # Transformação enveloped: assinaturas internas ficam fora do digest
    assinaturas = elemento.findall(f".//{{{NS_DS}}}Signature")
    if assinaturas:
        elemento = _copia_sem(elemento, assinaturas)

    serializado = etree.tostring(elemento, encoding="unicode", with_tail=False)
    canonico = canonicalizar(serializado)
    return base64.b64encode(hashlib.sha1(canonico.encode("utf-8")).digest()).decode("ascii")


def _copia_sem(elemento: etree._Element, remover: list) -> etree._Element:
    caminhos = [elemento.getroottree().getpath(r) for r in remover]
    copia = etree.fromstring(etree.tostring(elemento.getroottree()))
    arvore = copia.getroottree()
    for caminho in caminhos:
        for alvo in arvore.xpath(caminho):
            alvo.getparent().remove(alvo)
    return arvore.xpath(elemento.getroottree().getpath(elemento))[0]
