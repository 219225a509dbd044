"""
Chave de acesso da NF-e/NFC-e (44 dígitos).

Posição | Tamanho | Conteúdo
--------|---------|------------------------------------------
01-02   | 2       | Código IBGE da UF do emitente
03-06   | 4       | Ano e mês de emissão (AAMM)
07-20   | 14      | CNPJ do emitente
21-22   | 2       | Modelo (55=NF-e, 65=NFC-e)
23-25   | 3       | Série
26-34   | 9       | Número do documento
35      | 1       | Tipo de emissão (1=Normal)
36-43   | 8       | Código numérico (cNF)
44      | 1       | Dígito verificador (módulo 11)
"""

import logging
import re
import secrets
from datetime import date

from caixa_nfe.nfe.exceptions import ChaveAcessoError, UFDesconhecidaError

logger = logging.getLogger(__name__)

PREFIXO_ID = "NFe"

CODIGOS_UF = {
    "RO": "11", "AC": "12", "AM": "13", "RR": "14", "PA": "15", "AP": "16", "TO": "17",
    "MA": "21", "PI": "22", "CE": "23", "RN": "24", "PB": "25", "PE": "26", "AL": "27",
    "SE": "28", "BA": "29", "MG": "31", "ES": "32", "RJ": "33", "SP": "35", "PR": "41",
    "SC": "42", "RS": "43", "MS": "50", "MT": "51", "GO": "52", "DF": "53",
}  # fmt: skip

MODELOS = ("55", "65")

_PESOS = (2, 3, 4, 5, 6, 7, 8, 9)
_RE_CHAVE = re.compile(r"^\d{44}$")


def codigo_uf(uf: str) -> str:
    """Código IBGE de dois dígitos da UF."""
    try:
        return CODIGOS_UF[(uf or "").strip().upper()]
    except KeyError:
        raise UFDesconhecidaError(f"UF desconhecida: {uf!r}") from None


def calcular_digito_verificador(prefixo: str) -> str:
    """
    Módulo 11 com pesos 2..9 aplicados da direita para a esquerda.

    Resto 0 ou 1 resulta em dígito 0.
    """
    if not prefixo.isdigit():
        raise ChaveAcessoError(f"Prefixo da chave deve conter só dígitos: {prefixo!r}")

    soma = sum(int(d) * _PESOS[i % len(_PESOS)] for i, d in enumerate(reversed(prefixo)))
    digito = 11 - (soma % 11)
    return "0" if digito >= 10 else str(digito)


def gerar_codigo_numerico() -> str:
    """cNF aleatório de 8 dígitos (imprevisível por documento)."""
    return f"{secrets.randbelow(10**8):08d}"


def gerar_chave_acesso(
    uf: str,
    cnpj: str,
    modelo: str | int,
    serie: str | int,
    numero: int,
    data_emissao: date,
    tipo_emissao: int = 1,
    codigo_numerico: str | None = None,
) -> str:
    """
    Gera a chave de acesso de 44 dígitos.

    ``codigo_numerico`` pode ser injetado (testes, reemissão em contingência);
    sem ele o cNF é sorteado.
    """
    c_uf = codigo_uf(uf)
    aamm = f"{data_emissao:%y%m}"

    cnpj_limpo = re.sub(r"\D", "", cnpj or "")
    if not cnpj_limpo or len(cnpj_limpo) > 14:
        raise ChaveAcessoError(f"CNPJ do emitente inválido para a chave: {cnpj!r}")

    mod = str(modelo).zfill(2)
    if mod not in MODELOS:
        raise ChaveAcessoError(f"Modelo de documento inválido: {modelo!r}")

    serie_str = str(serie).strip()
    if not serie_str.isdigit() or int(serie_str) > 999:
        raise ChaveAcessoError(f"Série inválida: {serie!r}")

    if not 1 <= int(numero) <= 999_999_999:
        raise ChaveAcessoError(f"Número do documento fora da faixa: {numero!r}")

    if not 1 <= int(tipo_emissao) <= 9:
        raise ChaveAcessoError(f"Tipo de emissão inválido: {tipo_emissao!r}")

    if codigo_numerico is None:
        codigo_numerico = gerar_codigo_numerico()
    elif not re.fullmatch(r"\d{8}", codigo_numerico):
        raise ChaveAcessoError(f"Código numérico deve ter 8 dígitos: {codigo_numerico!r}")

    prefixo = (
        c_uf
        + aamm
        + cnpj_limpo.zfill(14)
        + mod
        + serie_str.zfill(3)
        + str(int(numero)).zfill(9)
        + str(int(tipo_emissao))
        + codigo_numerico
    )
    chave = prefixo + calcular_digito_verificador(prefixo)

    logger.debug("Chave de acesso gerada: %s", chave)
    return chave


def validar_chave_acesso(chave: str) -> bool:
    """44 dígitos numéricos com dígito verificador correto."""
    if not chave or not _RE_CHAVE.match(chave):
        return False
    return calcular_digito_verificador(chave[:43]) == chave[43]


def decompor_chave_acesso(chave: str) -> dict[str, str]:
    """Separa a chave nos seus campos."""
    if not chave or not _RE_CHAVE.match(chave):
        raise ChaveAcessoError(f"Chave de acesso deve ter 44 dígitos: {chave!r}")
    return {
        "uf": chave[0:2],
        "ano_mes": chave[2:6],
        "cnpj": chave[6:20],
        "modelo": chave[20:22],
        "serie": chave[22:25],
        "numero": chave[25:34],
        "tipo_emissao": chave[34],
        "codigo_numerico": chave[35:43],
        "digito_verificador": chave[43],
    }


def formatar_chave_acesso(chave: str) -> str:
    """Blocos de 4 dígitos separados por espaço (DANFE)."""
    if len(chave) != 44:
        return chave
    return " ".join(chave[i : i + 4] for i in range(0, 44, 4))


def id_documento(chave: str) -> str:
    """Valor do atributo Id de ``<infNFe>``."""
    return f"{PREFIXO_ID}{chave}"
