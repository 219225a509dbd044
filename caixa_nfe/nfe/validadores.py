"""
Validação de negócio do rascunho antes da montagem do XML.

``validar_rascunho`` percorre o rascunho inteiro e devolve todas as
violações encontradas; quem monta o XML decide se aborta.
"""

import re
from dataclasses import dataclass
from decimal import Decimal

from caixa_nfe.nfe.chave_acesso import CODIGOS_UF, MODELOS
from caixa_nfe.nfe.choices import AmbienteNFe, MeioPagamento, ModalidadeFrete, RegimeTributario
from caixa_nfe.nfe.rascunho import Endereco, ItemNFe, RascunhoNFe, calcular_totais, decimal

CSOSN_SUPORTADOS = {"101", "102", "103", "300", "400", "500", "900"}
CST_SUPORTADOS = {"00", "40", "41", "50", "60", "90"}

TOLERANCIA_TOTAL = Decimal("0.01")

_RE_MUNICIPIO = re.compile(r"^\d{7}$")
_RE_NCM = re.compile(r"^\d{8}$")
_RE_CFOP = re.compile(r"^\d{4}$")
_RE_IE = re.compile(r"^(\d{2,14}|ISENTO)$")
# Fora do conjunto Char do XML 1.0 (lxml recusa na montagem)
_RE_CARACTERE_PROIBIDO = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def validar_cpf(cpf: str) -> bool:
    """Valida CPF brasileiro."""
    cpf = re.sub(r"[^0-9]", "", cpf or "")
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False

    for i in range(9, 11):
        valor = sum(int(cpf[num]) * ((i + 1) - num) for num in range(0, i))
        digito = ((valor * 10) % 11) % 10
        if digito != int(cpf[i]):
            return False
    return True


def validar_cnpj(cnpj: str) -> bool:
    """Valida CNPJ brasileiro."""
    cnpj = re.sub(r"[^0-9]", "", cnpj or "")
    if len(cnpj) != 14 or cnpj == cnpj[0] * 14:
        return False

    for i, multiplicadores in [
        (12, [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]),
        (13, [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]),
    ]:
        soma = sum(int(cnpj[j]) * multiplicadores[j] for j in range(i))
        resto = soma % 11
        digito = 0 if resto < 2 else 11 - resto
        if digito != int(cnpj[i]):
            return False
    return True


def validar_documento(documento: str) -> bool:
    """CPF (11 dígitos) ou CNPJ (14 dígitos)."""
    limpo = re.sub(r"[^0-9]", "", documento or "")
    if len(limpo) == 11:
        return validar_cpf(limpo)
    if len(limpo) == 14:
        return validar_cnpj(limpo)
    return False


@dataclass(frozen=True)
class ErroValidacao:
    """Violação de regra: ``campo`` em notação de caminho (ex.: ``itens[0].ncm``)."""

    campo: str
    mensagem: str

    def __str__(self):
        return self.mensagem


def validar_rascunho(rascunho: RascunhoNFe) -> list[ErroValidacao]:
    """Aplica todas as regras e devolve a lista (vazia quando válido)."""
    erros: list[ErroValidacao] = []

    _validar_identificacao(rascunho, erros)
    _validar_emitente(rascunho, erros)
    _validar_destinatario(rascunho, erros)
    _validar_itens(rascunho, erros)
    _validar_transporte(rascunho, erros)
    _validar_pagamento(rascunho, erros)
    _validar_totais(rascunho, erros)
    _validar_caracteres(rascunho, erros)

    return erros


# ---------------------------------------------------------------------------
# Regras por bloco
# ---------------------------------------------------------------------------


def _validar_identificacao(rascunho: RascunhoNFe, erros: list) -> None:
    if str(rascunho.modelo) not in MODELOS:
        erros.append(ErroValidacao("modelo", f"Modelo de documento inválido: {rascunho.modelo}"))
    if rascunho.ambiente is not None and str(rascunho.ambiente) not in AmbienteNFe.values:
        erros.append(ErroValidacao("ambiente", f"Ambiente inválido: {rascunho.ambiente}"))

    serie = str(rascunho.serie).strip()
    if not serie.isdigit() or int(serie) > 999:
        erros.append(ErroValidacao("serie", "Série deve estar entre 0 e 999"))

    if not isinstance(rascunho.numero, int) or not 1 <= rascunho.numero <= 999_999_999:
        erros.append(ErroValidacao("numero", "Número da NF-e deve estar entre 1 e 999999999"))

    if not (rascunho.natureza_operacao or "").strip():
        erros.append(ErroValidacao("natureza_operacao", "Natureza da operação é obrigatória"))


def _validar_emitente(rascunho: RascunhoNFe, erros: list) -> None:
    emitente = rascunho.emitente
    if not validar_cnpj(emitente.cnpj):
        erros.append(ErroValidacao("emitente.cnpj", f"CNPJ do emitente inválido: {emitente.cnpj}"))

    ie = re.sub(r"[.\-/\s]", "", emitente.inscricao_estadual or "").upper()
    if not _RE_IE.match(ie):
        erros.append(ErroValidacao("emitente.inscricao_estadual", "Inscrição estadual do emitente inválida"))

    if not (emitente.razao_social or "").strip():
        erros.append(ErroValidacao("emitente.razao_social", "Razão social do emitente é obrigatória"))

    if _regime(rascunho) is None:
        erros.append(ErroValidacao("emitente.regime_tributario", f"CRT inválido: {emitente.regime_tributario}"))

    _validar_endereco(emitente.endereco, "emitente.endereco", erros)


def _validar_destinatario(rascunho: RascunhoNFe, erros: list) -> None:
    destinatario = rascunho.destinatario
    if not (destinatario.documento or "").strip():
        erros.append(ErroValidacao("destinatario.documento", "CPF/CNPJ do destinatário é obrigatório"))
    elif not validar_documento(destinatario.documento):
        erros.append(
            ErroValidacao("destinatario.documento", f"CPF/CNPJ do destinatário inválido: {destinatario.documento}")
        )

    if not (destinatario.nome or "").strip():
        erros.append(ErroValidacao("destinatario.nome", "Nome do destinatário é obrigatório"))

    if destinatario.endereco is not None:
        _validar_endereco(destinatario.endereco, "destinatario.endereco", erros)


def _validar_endereco(endereco: Endereco, prefixo: str, erros: list) -> None:
    if not _RE_MUNICIPIO.match(str(endereco.codigo_municipio or "")):
        erros.append(ErroValidacao(f"{prefixo}.codigo_municipio", "Código do município deve ter 7 dígitos (IBGE)"))
    if (endereco.uf or "").strip().upper() not in CODIGOS_UF:
        erros.append(ErroValidacao(f"{prefixo}.uf", f"UF desconhecida: {endereco.uf}"))


def _validar_itens(rascunho: RascunhoNFe, erros: list) -> None:
    if not rascunho.itens:
        erros.append(ErroValidacao("itens", "A NF-e deve ter pelo menos um item"))
        return

    regime = _regime(rascunho)
    simplificado = regime.simplificado if regime is not None else None
    for i, item in enumerate(rascunho.itens):
        _validar_item(item, i, simplificado, erros)


def _validar_item(item: ItemNFe, indice: int, simplificado: bool | None, erros: list) -> None:
    prefixo = f"itens[{indice}]"
    rotulo = f"Item {indice + 1}"

    if not (item.descricao or "").strip():
        erros.append(ErroValidacao(f"{prefixo}.descricao", f"{rotulo}: descrição é obrigatória"))
    if not (item.codigo or "").strip():
        erros.append(ErroValidacao(f"{prefixo}.codigo", f"{rotulo}: código do produto é obrigatório"))
    if not _RE_NCM.match(re.sub(r"\D", "", item.ncm or "")):
        erros.append(ErroValidacao(f"{prefixo}.ncm", f"{rotulo}: NCM deve ter 8 dígitos"))
    if not _RE_CFOP.match(re.sub(r"\D", "", item.cfop or "")):
        erros.append(ErroValidacao(f"{prefixo}.cfop", f"{rotulo}: CFOP deve ter 4 dígitos"))

    quantidade = decimal(item.quantidade)
    valor_unitario = decimal(item.valor_unitario)
    valor_total = decimal(item.valor_total)
    if quantidade <= 0:
        erros.append(ErroValidacao(f"{prefixo}.quantidade", f"{rotulo}: quantidade deve ser maior que zero"))
    if valor_unitario <= 0:
        erros.append(ErroValidacao(f"{prefixo}.valor_unitario", f"{rotulo}: valor unitário deve ser maior que zero"))
    if valor_total <= 0:
        erros.append(ErroValidacao(f"{prefixo}.valor_total", f"{rotulo}: valor total deve ser maior que zero"))
    elif abs(quantidade * valor_unitario - valor_total) > TOLERANCIA_TOTAL:
        erros.append(
            ErroValidacao(
                f"{prefixo}.valor_total",
                f"{rotulo}: valor total {valor_total} não confere com "
                f"quantidade x valor unitário ({quantidade * valor_unitario})",
            )
        )

    if item.valor_tributos is not None and decimal(item.valor_tributos) < 0:
        erros.append(
            ErroValidacao(f"{prefixo}.valor_tributos", f"{rotulo}: valor aproximado dos tributos negativo")
        )

    codigo = str(item.icms.codigo or "")
    if simplificado is None:
        return
    if simplificado and codigo not in CSOSN_SUPORTADOS:
        erros.append(ErroValidacao(f"{prefixo}.icms.codigo", f"{rotulo}: CSOSN inválido para o Simples: {codigo!r}"))
    elif not simplificado and codigo not in CST_SUPORTADOS:
        erros.append(ErroValidacao(f"{prefixo}.icms.codigo", f"{rotulo}: CST de ICMS inválido: {codigo!r}"))


def _validar_transporte(rascunho: RascunhoNFe, erros: list) -> None:
    transporte = rascunho.transporte
    if transporte.modalidade not in ModalidadeFrete.values:
        erros.append(ErroValidacao("transporte.modalidade", f"Modalidade de frete inválida: {transporte.modalidade}"))

    transportadora = transporte.transportadora
    if transportadora is not None and transportadora.documento and not (transportadora.nome or "").strip():
        erros.append(
            ErroValidacao("transporte.transportadora.nome", "Nome da transportadora é obrigatório quando há CPF/CNPJ")
        )

    if transporte.placa and not transporte.uf_veiculo:
        erros.append(ErroValidacao("transporte.uf_veiculo", "UF do veículo é obrigatória quando há placa"))


def _validar_pagamento(rascunho: RascunhoNFe, erros: list) -> None:
    if str(rascunho.pagamento.meio) not in MeioPagamento.values:
        erros.append(ErroValidacao("pagamento.meio", f"Meio de pagamento inválido: {rascunho.pagamento.meio}"))


def _validar_totais(rascunho: RascunhoNFe, erros: list) -> None:
    """Compara os totais informados com os calculados a partir dos itens."""
    if rascunho.totais is None or _regime(rascunho) is None:
        return

    calculados = calcular_totais(rascunho)
    for campo, valor in vars(rascunho.totais).items():
        esperado = getattr(calculados, campo)
        if abs(decimal(valor) - esperado) > TOLERANCIA_TOTAL:
            erros.append(
                ErroValidacao(
                    f"totais.{campo}",
                    f"Total {campo} informado ({valor}) difere do calculado ({esperado})",
                )
            )


def _validar_caracteres(rascunho: RascunhoNFe, erros: list) -> None:
    """Texto livre não pode ter caracteres de controle proibidos no XML 1.0."""
    for campo, texto in _textos_livres(rascunho):
        if texto and _RE_CARACTERE_PROIBIDO.search(str(texto)):
            erros.append(ErroValidacao(campo, f"Caractere inválido em {campo}"))


def _textos_livres(rascunho: RascunhoNFe):
    yield "natureza_operacao", rascunho.natureza_operacao
    yield "informacoes_adicionais", rascunho.informacoes_adicionais

    emitente = rascunho.emitente
    yield "emitente.razao_social", emitente.razao_social
    yield "emitente.nome_fantasia", emitente.nome_fantasia
    yield from _textos_endereco(emitente.endereco, "emitente.endereco")

    destinatario = rascunho.destinatario
    yield "destinatario.nome", destinatario.nome
    yield "destinatario.email", destinatario.email
    if destinatario.endereco is not None:
        yield from _textos_endereco(destinatario.endereco, "destinatario.endereco")

    for i, item in enumerate(rascunho.itens):
        yield f"itens[{i}].codigo", item.codigo
        yield f"itens[{i}].descricao", item.descricao
        yield f"itens[{i}].unidade", item.unidade

    transportadora = rascunho.transporte.transportadora
    if transportadora is not None:
        yield "transporte.transportadora.nome", transportadora.nome
        yield "transporte.transportadora.endereco", transportadora.endereco
        yield "transporte.transportadora.municipio", transportadora.municipio


def _textos_endereco(endereco: Endereco, prefixo: str):
    for atributo in ("logradouro", "numero", "complemento", "bairro", "municipio"):
        yield f"{prefixo}.{atributo}", getattr(endereco, atributo)


def _regime(rascunho: RascunhoNFe) -> RegimeTributario | None:
    """CRT do emitente ou None quando o código não existe."""
    crt = str(rascunho.emitente.regime_tributario)
    return RegimeTributario(crt) if crt in RegimeTributario.values else None
