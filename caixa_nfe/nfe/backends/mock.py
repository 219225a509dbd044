"""
Transmissor simulado - usado em testes e desenvolvimento.
Autoriza sem chamar a SEFAZ.
"""

import re
import uuid

from django.utils import timezone

from caixa_nfe.nfe.backends.base import (
    BaseTransmissorNFe,
    ResultadoCancelamento,
    ResultadoConsulta,
    ResultadoTransmissao,
)
from caixa_nfe.nfe.choices import StatusNFe, pode_transitar

_RE_ID = re.compile(r'Id="NFe(\d{44})"')

# Justificativa de cancelamento: 15 a 255 caracteres (leiaute do evento)
TAMANHO_MINIMO_JUSTIFICATIVA = 15


class MockTransmissor(BaseTransmissorNFe):
    """Simula autorização, consulta e cancelamento em memória."""

    def __init__(self):
        self._situacoes: dict[str, StatusNFe] = {}

    def transmitir(self, nfe_assinada: str) -> ResultadoTransmissao:
        encontrado = _RE_ID.search(nfe_assinada or "")
        if encontrado is None:
            return ResultadoTransmissao(
                sucesso=False,
                status=StatusNFe.REJEITADA,
                mensagem="Rejeição: chave de acesso não encontrada no XML (mock)",
            )
        chave = encontrado.group(1)

        if "<Signature" not in nfe_assinada:
            self._situacoes[chave] = StatusNFe.REJEITADA
            return ResultadoTransmissao(
                sucesso=False,
                status=StatusNFe.REJEITADA,
                chave_acesso=chave,
                mensagem="Rejeição: XML não assinado (mock)",
            )

        atual = self._situacoes.get(chave, StatusNFe.RASCUNHO)
        if atual == StatusNFe.AUTORIZADA:
            return ResultadoTransmissao(
                sucesso=False,
                status=atual,
                chave_acesso=chave,
                mensagem="Rejeição: duplicidade de NF-e (mock)",
            )

        self._situacoes[chave] = StatusNFe.AUTORIZADA
        return ResultadoTransmissao(
            sucesso=True,
            status=StatusNFe.AUTORIZADA,
            chave_acesso=chave,
            protocolo=_gerar_protocolo(),
            data_autorizacao=timezone.now(),
            xml_retorno="<retEnviNFe><mock>true</mock></retEnviNFe>",
            mensagem="Autorizado o uso da NF-e (mock)",
        )

    def consultar(self, chave_acesso: str) -> ResultadoConsulta:
        status = self._situacoes.get(chave_acesso)
        if status is None:
            return ResultadoConsulta(sucesso=False, mensagem="NF-e não consta na base (mock)")
        return ResultadoConsulta(
            sucesso=True,
            status=status,
            xml_retorno="<retConsSitNFe><mock>true</mock></retConsSitNFe>",
            mensagem="Consulta realizada com sucesso (mock)",
        )

    def cancelar(self, chave_acesso: str, protocolo: str, justificativa: str) -> ResultadoCancelamento:
        status = self._situacoes.get(chave_acesso, StatusNFe.RASCUNHO)
        if not pode_transitar(status, StatusNFe.CANCELADA):
            return ResultadoCancelamento(
                sucesso=False,
                status=status,
                mensagem=f"NF-e com status {status.label} não pode ser cancelada",
            )
        if len((justificativa or "").strip()) < TAMANHO_MINIMO_JUSTIFICATIVA:
            return ResultadoCancelamento(
                sucesso=False,
                status=status,
                mensagem="Justificativa deve ter pelo menos 15 caracteres",
            )

        self._situacoes[chave_acesso] = StatusNFe.CANCELADA
        return ResultadoCancelamento(
            sucesso=True,
            status=StatusNFe.CANCELADA,
            protocolo=_gerar_protocolo(),
            mensagem=f"Cancelamento homologado (mock): {justificativa.strip()}",
        )


def _gerar_protocolo() -> str:
    return str(uuid.uuid4().int)[:15]
