"""
Canonicalização reduzida de fragmentos XML para cálculo de digest.

Não é a C14N completa do W3C: não reordena atributos, não reescreve
prefixos de namespace e não recodifica entidades. O verificador do outro
lado reproduz exatamente estas regras, então elas não podem mudar:

1. remove a declaração ``<?xml ... ?>``;
2. remove comentários;
3. remove espaços em branco entre ``>`` e ``<``;
4. normaliza CRLF/CR para LF;
5. apara espaços nas extremidades.
"""

import re

ALGORITMO_C14N = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"

_RE_DECLARACAO = re.compile(r"<\?xml(?:\s[^>]*)?\?>")
_RE_COMENTARIO = re.compile(r"<!--.*?-->", re.DOTALL)
_RE_ESPACO_ENTRE_TAGS = re.compile(r">\s+<")


def canonicalizar(xml: str) -> str:
    """Aplica a canonicalização reduzida a um fragmento XML."""
    if isinstance(xml, bytes):
        xml = xml.decode("utf-8")

    xml = _RE_DECLARACAO.sub("", xml)
    xml = _RE_COMENTARIO.sub("", xml)
    xml = _RE_ESPACO_ENTRE_TAGS.sub("><", xml)
    xml = xml.replace("\r\n", "\n").replace("\r", "\n")
    return xml.strip()
