"""
Tests for credential encryption.
"""
import pytest

from socialconnect.utils.crypto import (
    FernetTextEncryptor,
    NoOpTextEncryptor,
    build_text_encryptor,
    generate_encryption_key,
)


def test_fernet_key():
    """Test a generated Fernet key encrypts and decrypts."""
    encryptor = FernetTextEncryptor(generate_encryption_key())
    
    encrypted = encryptor.encrypt("access-token")
    
    assert encrypted != "access-token"
    assert encryptor.decrypt(encrypted) == "access-token"


def test_passphrase_key_is_derived():
    """Test any passphrase works and derives the same key each time."""
    encrypted = FernetTextEncryptor("correct horse battery staple").encrypt("secret")
    
    assert FernetTextEncryptor("correct horse battery staple").decrypt(encrypted) == "secret"


def test_wrong_key_fails():
    encrypted = FernetTextEncryptor("one key").encrypt("secret")
    
    with pytest.raises(ValueError):
        FernetTextEncryptor("another key").decrypt(encrypted)


def test_empty_key_means_no_encryption():
    encryptor = build_text_encryptor("")
    
    assert isinstance(encryptor, NoOpTextEncryptor)
    assert encryptor.encrypt("plain") == "plain"
    assert isinstance(build_text_encryptor("k"), FernetTextEncryptor)
    with pytest.raises(ValueError):
        FernetTextEncryptor("")
