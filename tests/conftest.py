from pathlib import Path

import pytest

from zerotrace.signing.keys import KeyProvider, KeySources, generate_keypair


@pytest.fixture(scope="session")
def keypair() -> tuple[str, str]:
    return generate_keypair()


@pytest.fixture
def key_files(tmp_path, keypair) -> tuple[Path, Path]:
    sk_pem, vk_pem = keypair
    keys = tmp_path / "keys"
    keys.mkdir()
    (keys / "private.pem").write_text(sk_pem)
    (keys / "public.pem").write_text(vk_pem)
    return keys / "private.pem", keys / "public.pem"


@pytest.fixture
def provider(keypair) -> KeyProvider:
    sk_pem, vk_pem = keypair
    return KeyProvider(KeySources(private_key_pem=sk_pem, public_key_pem=vk_pem))
