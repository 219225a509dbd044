"""
Shared test fixtures for caixa_nfe.
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from caixa_nfe.tests.factories import (
    SENHA_PFX,
    RascunhoNFeFactory,
    gerar_certificado,
    gerar_pfx,
)


@pytest.fixture(scope="session")
def chave_rsa():
    """Chave RSA 2048 compartilhada pela sessão (geração é cara)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificado_a1(chave_rsa):
    """Certificado e-CNPJ autoassinado, válido de ontem até daqui a um ano."""
    return gerar_certificado(chave_rsa)


@pytest.fixture(scope="session")
def pfx_a1(chave_rsa, certificado_a1):
    """Bytes do .pfx protegido pela senha de teste."""
    return gerar_pfx(chave_rsa, certificado_a1)


@pytest.fixture
def senha_pfx():
    return SENHA_PFX


@pytest.fixture
def identidade(pfx_a1):
    """IdentidadeAssinatura carregada do A1 de teste."""
    from caixa_nfe.nfe.certificado import carregar_certificado

    return carregar_certificado(pfx_a1, SENHA_PFX)


@pytest.fixture
def rascunho():
    """Rascunho mínimo válido (Simples Nacional, um item, homologação)."""
    return RascunhoNFeFactory()
