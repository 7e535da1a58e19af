"""Shared fixtures for sopsmeta tests."""
import pytest

from sopsmeta import Metadata


AGE_RECIPIENT = "age1ql3z7hjy54pw3hyww5ayyfg7zqgvc7w3j2elw8zmrj2kg5sfn9aqmcac8p"
AGE_ENC = "-----BEGIN AGE ENCRYPTED FILE-----\nYWdlLWVuY3J5cHRpb24\n-----END AGE ENCRYPTED FILE-----\n"
MAC = "ENC[AES256_GCM,data:c2VjcmV0,iv:aXY=,tag:dGFn,type:str]"


@pytest.fixture
def envelope():
    """A sops section as written by the Go implementation."""
    return {
        "kms": [],
        "gcp_kms": [],
        "azure_kv": [],
        "hc_vault": [],
        "age": [{"recipient": AGE_RECIPIENT, "enc": AGE_ENC}],
        "lastmodified": "2025-01-10T12:00:00Z",
        "mac": MAC,
        "pgp": [
            {
                "created_at": "2025-01-10T12:00:00Z",
                "enc": "-----BEGIN PGP MESSAGE-----\n...",
                "fp": "FBC7B9E2A4F9289AC0C1D4843D16CEE4A27381B4",
            }
        ],
        "unencrypted_suffix": "_unencrypted",
        "version": "3.7.3",
    }


@pytest.fixture
def metadata():
    return Metadata()
