"""Shared fixtures: in-memory key service and secret table."""
import os

import pytest

from navigator_credstash.backends import DataKey, ScanPage
from navigator_credstash.exceptions import DuplicateVersionError
from navigator_credstash.store import SecretStore


class FakeKeyService:
    """KMS stand-in that binds the encryption context to each wrapped key.

    Unwrapping under a different context returns no plaintext.
    """

    def __init__(self):
        self._keys = {}
        self.generated = 0
        self.fail_generate = False

    async def generate_data_key(self, key_id, num_bytes, context=None):
        self.generated += 1
        if self.fail_generate:
            return DataKey(plaintext=None, ciphertext_blob=None)
        plaintext = os.urandom(num_bytes)
        wrapped = b"wrapped:" + key_id.encode() + b":" + os.urandom(16)
        self._keys[wrapped] = (plaintext, dict(context or {}))
        return DataKey(plaintext=plaintext, ciphertext_blob=wrapped)

    async def decrypt(self, wrapped_key, context=None):
        entry = self._keys.get(wrapped_key)
        if entry is None:
            return None
        plaintext, bound = entry
        if bound != dict(context or {}):
            return None
        return plaintext


class MemoryTable:
    """Secret table stand-in.

    Like DynamoDB it sorts versions as strings and pages scans.
    """

    def __init__(self, page_size: int = 2):
        self.items = {}
        self.page_size = page_size
        self.fail_on = set()
        self.delete_calls = []
        self.scan_calls = 0

    @staticmethod
    def _project(item, projection):
        if not projection:
            return dict(item)
        return {k: item[k] for k in projection if k in item}

    async def put(self, item):
        key = (item["name"], item["version"])
        if key in self.items:
            raise DuplicateVersionError(*key)
        self.items[key] = dict(item)

    async def query(self, name, consistent_read=False, descending=True, projection=None):
        found = [v for (n, _), v in self.items.items() if n == name]
        found.sort(key=lambda i: i["version"], reverse=descending)
        return [self._project(i, projection) for i in found]

    async def scan(self, projection=None, start_key=None):
        self.scan_calls += 1
        keys = sorted(self.items)
        start = 0
        if start_key:
            start = keys.index((start_key["name"], start_key["version"])) + 1
        chunk = keys[start:start + self.page_size]
        last_key = None
        if start + self.page_size < len(keys):
            name, version = chunk[-1]
            last_key = {"name": name, "version": version}
        return ScanPage(
            items=[self._project(self.items[k], projection) for k in chunk],
            last_key=last_key,
        )

    async def delete(self, name, version):
        self.delete_calls.append(version)
        if version in self.fail_on:
            raise RuntimeError(f"throttled deleting {version}")
        self.items.pop((name, version), None)


@pytest.fixture
def data_key():
    """Fresh 64-byte data key."""
    return os.urandom(64)


@pytest.fixture
def kms():
    return FakeKeyService()


@pytest.fixture
def table():
    return MemoryTable()


@pytest.fixture
def store(table, kms):
    """SecretStore over the in-memory collaborators."""
    return SecretStore(table, kms, kms_key_id="alias/test")
