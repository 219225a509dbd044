"""
Testes da canonicalização reduzida.
"""

from caixa_nfe.nfe.canonicalizacao import canonicalizar


class TestCanonicalizar:
    def test_remove_declaracao_xml(self):
        xml = '<?xml version="1.0" encoding="UTF-8"?><a>1</a>'
        assert canonicalizar(xml) == "<a>1</a>"

    def test_remove_comentarios(self):
        xml = "<a><!-- comentário\nem duas linhas --><b>x</b></a>"
        assert canonicalizar(xml) == "<a><b>x</b></a>"

    def test_remove_espaco_entre_tags(self):
        xml = "<a>\n  <b>x</b>\n  <c>y</c>\n</a>"
        assert canonicalizar(xml) == "<a><b>x</b><c>y</c></a>"

    def test_preserva_espaco_dentro_do_texto(self):
        """Só colapsa espaço estritamente entre '>' e '<'."""
        xml = "<a>  texto com  espaços  </a>"
        assert canonicalizar(xml) == "<a>  texto com  espaços  </a>"

    def test_normaliza_quebras_de_linha(self):
        xml = "<a>linha1\r\nlinha2\rlinha3</a>"
        assert canonicalizar(xml) == "<a>linha1\nlinha2\nlinha3</a>"

    def test_apara_extremidades(self):
        assert canonicalizar("  \n<a/>\n  ") == "<a/>"

    def test_nao_reordena_atributos(self):
        xml = '<a z="1" b="2" xmlns="urn:x"></a>'
        assert canonicalizar(xml) == xml

    def test_nao_recodifica_entidades(self):
        xml = "<a>R&amp;D &lt;teste&gt;</a>"
        assert canonicalizar(xml) == xml

    def test_aceita_bytes(self):
        assert canonicalizar(b"<?xml version='1.0'?>\n<a>1</a>") == "<a>1</a>"

    def test_idempotente(self):
        xml = (
            '<?xml version="1.0"?>\r\n<NFe>\r\n  <!-- x -->\r\n'
            '  <infNFe Id="NFe1" versao="4.00">\r\n    <ide>a  b</ide>\r\n  </infNFe>\r\n</NFe>\r\n'
        )
        uma_vez = canonicalizar(xml)
        assert canonicalizar(uma_vez) == uma_vez
