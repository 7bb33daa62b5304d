"""Pointer record linking a share code to a stored file."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from common.constants import POINTER_RECORD_VERSION, STORAGE_PROVIDER


class PointerRecord(BaseModel):
    """
    Immutable mapping payload. Serialized with camelCase keys
    (rootHash, fileName, txHash, ...) to stay readable by existing
    mapping files.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    share_code: str
    root_digest: str
    file_name: str
    file_size: int
    mime_type: str = "application/octet-stream"
    is_encrypted: bool = False
    iv: Optional[str] = None
    encryption_key_material: Optional[str] = None
    uploader: str
    upload_time: str
    transaction_ref: Optional[str] = None
    provider: str = STORAGE_PROVIDER
    version: str = POINTER_RECORD_VERSION
    expected_replica: int = 1

    def to_wire(self) -> dict:
        """camelCase dict using the legacy field names for digest and tx."""
        data = self.model_dump(by_alias=True)
        data["rootHash"] = data.pop("rootDigest")
        data["txHash"] = data.pop("transactionRef")
        data["encryptionKey"] = data.pop("encryptionKeyMaterial")
        return data

    @classmethod
    def from_wire(cls, data: dict) -> 'PointerRecord':
        """
        Accept both legacy (rootHash/txHash/encryptionKey/code) and
        current key names.
        """
        obj = dict(data)
        renames = {
            "rootHash": "rootDigest",
            "txHash": "transactionRef",
            "encryptionKey": "encryptionKeyMaterial",
            "code": "shareCode",
        }
        for old, new in renames.items():
            if old in obj and new not in obj:
                obj[new] = obj.pop(old)
            else:
                obj.pop(old, None)
        if "isEncrypted" not in obj:
            obj["isEncrypted"] = bool(obj.get("iv"))
        return cls.model_validate(obj)

    def without_key(self) -> 'PointerRecord':
        return self.model_copy(update={"encryption_key_material": None})


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
