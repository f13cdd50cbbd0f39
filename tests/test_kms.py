"""Tests for the AWS KMS key service."""
import pytest
from botocore.exceptions import ClientError

from navigator_credstash.backends.kms import AWSKeyService

from .test_dynamodb import FakeClient, FakeSession, client_error


def make_service(responses=None):
    client = FakeClient(responses)
    service = AWSKeyService(region="eu-west-1", endpoint="http://localhost:4566")
    service._session = FakeSession(client)
    return service, client


class TestGenerateDataKey:

    @pytest.mark.asyncio
    async def test_without_context(self):
        service, client = make_service({
            "generate_data_key": [{"Plaintext": b"p" * 64, "CiphertextBlob": b"wrapped"}],
        })
        data_key = await service.generate_data_key("alias/credstash", 64)
        assert data_key.plaintext == b"p" * 64
        assert data_key.ciphertext_blob == b"wrapped"
        assert client.calls == [("generate_data_key", {
            "KeyId": "alias/credstash", "NumberOfBytes": 64,
        })]
        assert service._session.client_args == [
            ("kms", {"region_name": "eu-west-1", "endpoint_url": "http://localhost:4566"}),
        ]

    @pytest.mark.asyncio
    async def test_with_context(self):
        service, client = make_service()
        await service.generate_data_key("alias/credstash", 64, {"env": "prod"})
        (_, kwargs), = client.calls
        assert kwargs["EncryptionContext"] == {"env": "prod"}

    @pytest.mark.asyncio
    async def test_missing_parts(self):
        service, _ = make_service({"generate_data_key": [{}]})
        data_key = await service.generate_data_key("alias/credstash", 64)
        assert data_key.plaintext is None
        assert data_key.ciphertext_blob is None


class TestDecrypt:

    @pytest.mark.asyncio
    async def test_without_context(self):
        service, client = make_service({"decrypt": [{"Plaintext": b"k" * 64}]})
        assert await service.decrypt(b"wrapped") == b"k" * 64
        assert client.calls == [("decrypt", {"CiphertextBlob": b"wrapped"})]

    @pytest.mark.asyncio
    async def test_empty_context_not_sent(self):
        service, client = make_service()
        assert await service.decrypt(b"wrapped", {}) is None
        assert "EncryptionContext" not in client.calls[0][1]

    @pytest.mark.asyncio
    async def test_with_context(self):
        service, client = make_service()
        await service.decrypt(b"wrapped", {"env": "test"})
        assert client.calls[0][1]["EncryptionContext"] == {"env": "test"}

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        service, _ = make_service({
            "decrypt": [client_error("InvalidCiphertextException", "Decrypt")],
        })
        with pytest.raises(ClientError):
            await service.decrypt(b"wrapped", {"env": "prod"})
