"""
Testes do filtro de contexto de documento nos logs.
"""

import logging
import threading

from caixa_nfe.core.logging_filters import (
    DocumentoContextFilter,
    clear_documento_context,
    documento_context,
    set_documento_context,
)


def _record():
    return logging.LogRecord("caixa_nfe", logging.INFO, __file__, 1, "mensagem", None, None)


class TestDocumentoContextFilter:
    def teardown_method(self):
        clear_documento_context()

    def test_sem_contexto_usa_traco(self):
        record = _record()
        assert DocumentoContextFilter().filter(record) is True
        assert record.chave_acesso == "-"
        assert record.cnpj_emitente == "-"

    def test_injeta_contexto(self):
        set_documento_context(chave_acesso="3524", cnpj_emitente="11222333000181")
        record = _record()
        DocumentoContextFilter().filter(record)
        assert record.chave_acesso == "3524"
        assert record.cnpj_emitente == "11222333000181"

    def test_context_manager_limpa_ao_sair(self):
        with documento_context(chave_acesso="3524", cnpj_emitente="11222333000181"):
            dentro = _record()
            DocumentoContextFilter().filter(dentro)
        fora = _record()
        DocumentoContextFilter().filter(fora)
        assert dentro.chave_acesso == "3524"
        assert fora.chave_acesso == "-"

    def test_contexto_por_thread(self):
        set_documento_context(chave_acesso="principal", cnpj_emitente="1")
        capturado = {}

        def outra_thread():
            record = _record()
            DocumentoContextFilter().filter(record)
            capturado["chave"] = record.chave_acesso

        t = threading.Thread(target=outra_thread)
        t.start()
        t.join()
        assert capturado["chave"] == "-"

    def test_context_manager_aninhado_restaura_o_externo(self):
        with documento_context(chave_acesso="-", cnpj_emitente="11222333000181"):
            with documento_context(chave_acesso="3524", cnpj_emitente="11222333000181"):
                pass
            record = _record()
            DocumentoContextFilter().filter(record)
        assert record.chave_acesso == "-"
        assert record.cnpj_emitente == "11222333000181"
