"""
Management command para conferir validade e titular de um certificado A1.
"""

from pathlib import Path

from decouple import config
from django.core.management.base import BaseCommand, CommandError

from caixa_nfe.nfe.certificado import carregar_certificado, verificar_situacao
from caixa_nfe.nfe.exceptions import CertificadoError


class Command(BaseCommand):
    help = "Mostra titular, CNPJ e validade de um certificado A1 (.pfx/.p12)."

    def add_arguments(self, parser):
        parser.add_argument("certificado", help="Caminho do arquivo .pfx/.p12")
        parser.add_argument(
            "--senha",
            default=None,
            help="Senha do certificado (padrão: variável NFE_CERTIFICADO_SENHA)",
        )

    def handle(self, *args, **options):
        senha = options["senha"]
        if senha is None:
            senha = config("NFE_CERTIFICADO_SENHA", default="")

        try:
            pfx = Path(options["certificado"]).read_bytes()
        except OSError as e:
            raise CommandError(f"Não foi possível ler o certificado: {e}") from e

        try:
            identidade = carregar_certificado(pfx, senha)
        except CertificadoError as e:
            raise CommandError(str(e)) from e

        situacao = verificar_situacao(identidade)

        self.stdout.write(f"Titular: {identidade.nome or '-'}")
        self.stdout.write(f"CNPJ: {identidade.cnpj or '-'}")
        self.stdout.write(f"Emissor: {identidade.emissor}")
        self.stdout.write(f"Número de série: {identidade.numero_serie}")
        self.stdout.write(
            f"Validade: {identidade.valido_de:%d/%m/%Y} a {identidade.valido_ate:%d/%m/%Y}"
        )

        for aviso in situacao.avisos:
            self.stdout.write(self.style.WARNING(aviso))

        if situacao.valido:
            self.stdout.write(
                self.style.SUCCESS(f"Certificado válido ({situacao.dias_restantes} dias restantes)")
            )
        else:
            self.stdout.write(self.style.ERROR("Certificado fora da validade"))
