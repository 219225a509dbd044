"""
Management command para assinar um XML de NF-e com certificado A1.
Útil para reassinar documentos montados fora do pipeline.
"""

import re
from pathlib import Path

from decouple import config
from django.core.management.base import BaseCommand, CommandError

from caixa_nfe.nfe.assinatura import assinar_documento, verificar_assinatura
from caixa_nfe.nfe.certificado import carregar_certificado
from caixa_nfe.nfe.exceptions import NFeError

_RE_ID_NFE = re.compile(r'<infNFe\b[^>]*\bId="([^"]+)"')


class Command(BaseCommand):
    help = "Assina (XMLDSIG RSA-SHA1) o infNFe de um XML com certificado A1 (.pfx)."

    def add_arguments(self, parser):
        parser.add_argument("xml", help="Caminho do XML a assinar")
        parser.add_argument("--certificado", required=True, help="Caminho do arquivo .pfx/.p12")
        parser.add_argument(
            "--senha",
            default=None,
            help="Senha do certificado (padrão: variável NFE_CERTIFICADO_SENHA)",
        )
        parser.add_argument("--id", dest="id_elemento", default=None, help="Id do elemento (padrão: Id do infNFe)")
        parser.add_argument("--saida", default=None, help="Arquivo de saída (padrão: stdout)")

    def handle(self, *args, **options):
        senha = options["senha"]
        if senha is None:
            senha = config("NFE_CERTIFICADO_SENHA", default="")

        try:
            documento = Path(options["xml"]).read_text(encoding="utf-8")
            pfx = Path(options["certificado"]).read_bytes()
        except OSError as e:
            raise CommandError(f"Não foi possível ler o arquivo: {e}") from e

        id_elemento = options["id_elemento"]
        if not id_elemento:
            encontrado = _RE_ID_NFE.search(documento)
            if encontrado is None:
                raise CommandError("Elemento infNFe com atributo Id não encontrado; informe --id")
            id_elemento = encontrado.group(1)

        try:
            identidade = carregar_certificado(pfx, senha)
            assinado = assinar_documento(identidade, documento, id_elemento)
        except NFeError as e:
            raise CommandError(str(e)) from e

        if not verificar_assinatura(assinado):
            raise CommandError("Assinatura gerada não confere na verificação")

        if options["saida"]:
            Path(options["saida"]).write_text(assinado, encoding="utf-8")
            self.stdout.write(self.style.SUCCESS(f"XML assinado gravado em {options['saida']} (#{id_elemento})"))
        else:
            self.stdout.write(assinado)
