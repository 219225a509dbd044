"""
Exceções do núcleo de emissão de NF-e.

Todas derivam de ``NFeError`` (subclasse de ``ValueError``): representam dado
de entrada ou certificado defeituoso, nunca falha transitória. Nenhuma delas
deve ser retentada.
"""


class NFeError(ValueError):
    """Erro base do núcleo fiscal."""


# ---------------------------------------------------------------------------
# Certificado digital
# ---------------------------------------------------------------------------


class CertificadoError(NFeError):
    """Falha ao carregar ou usar o certificado A1."""


class SenhaInvalidaError(CertificadoError):
    """MAC ou decifragem do PKCS#12 falhou (senha incorreta)."""


class ArquivoMalformadoError(CertificadoError):
    """O buffer não é um PKCS#12 (PFX) decodificável."""


class ChavePrivadaAusenteError(CertificadoError):
    """O PKCS#12 não contém a chave privada."""


class CertificadoAusenteError(CertificadoError):
    """O PKCS#12 não contém o certificado do titular."""


class CertificadoExpiradoError(CertificadoError):
    """Certificado fora do período de validade na data da assinatura."""


# ---------------------------------------------------------------------------
# Assinatura
# ---------------------------------------------------------------------------


class AssinaturaError(NFeError):
    """Falha na construção da assinatura XMLDSIG."""


class XMLInvalidoError(AssinaturaError):
    """O documento a assinar não é XML bem formado."""


class ElementoNaoEncontradoError(AssinaturaError):
    """Nenhum elemento com o atributo Id informado."""


class ChaveAssinaturaRejeitadaError(AssinaturaError):
    """A chave privada não serve para RSA-SHA1."""


class DocumentoJaAssinadoError(AssinaturaError):
    """O documento já possui Signature referenciando o mesmo Id."""


# ---------------------------------------------------------------------------
# Chave de acesso
# ---------------------------------------------------------------------------


class ChaveAcessoError(NFeError):
    """Campo inválido na composição da chave de acesso."""


class UFDesconhecidaError(ChaveAcessoError):
    """Sigla de UF fora da tabela do IBGE."""


# ---------------------------------------------------------------------------
# Montagem do documento
# ---------------------------------------------------------------------------


class RascunhoInvalidoError(NFeError):
    """O rascunho violou uma ou mais regras de negócio.

    ``erros`` traz a lista completa, não só a primeira violação.
    """

    def __init__(self, erros):
        self.erros = list(erros)
        super().__init__(
            f"Rascunho de NF-e inválido ({len(self.erros)} erro(s)): "
            + "; ".join(str(e) for e in self.erros)
        )
