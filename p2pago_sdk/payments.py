"""
Payment records: remember the last successful payment per account.

Record a payment only after it is confirmed; nothing is written on failure.
"""
import json
import logging
import os
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import portalocker
from pydantic import ValidationError

from .models import PaymentRecord, PaymentStatus, parse_timestamp

logger = logging.getLogger(__name__)

KEY_PREFIX = "zkp2p-donate:v1:"

DEFAULT_STORAGE_PATH = "~/.p2pago/payments.json"


def storage_key(account_id: str) -> str:
    return f"{KEY_PREFIX}{account_id}"


class StorageAdapter(Protocol):
    def get(self, key: str) -> Optional[PaymentRecord]:
        ...

    def set(self, key: str, value: PaymentRecord) -> None:
        ...


class MemoryStorage:
    """Dict-backed storage for tests and short-lived processes"""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[PaymentRecord]:
        raw = self._records.get(key)
        if raw is None:
            return None
        try:
            return PaymentRecord.model_validate(raw)
        except ValidationError:
            logger.warning(f"Ignoring malformed payment record for {key}")
            return None

    def set(self, key: str, value: PaymentRecord) -> None:
        self._records[key] = value.to_wire()


class JsonFileStorage:
    """Process-safe JSON file storage"""

    def __init__(self, store_path: Optional[str] = None):
        """
        Args:
            store_path: Optional custom path; defaults to P2PAGO_STORAGE_PATH
                or ~/.p2pago/payments.json
        """
        path = store_path or os.environ.get("P2PAGO_STORAGE_PATH", DEFAULT_STORAGE_PATH)
        self.store_path = Path(os.path.expanduser(path))
        self._ensure_file()

    def _ensure_file(self):
        directory = self.store_path.parent
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)

        if not self.store_path.exists():
            with open(self.store_path, 'w') as f:
                json.dump({"records": {}}, f)

        # 0600 (Unix/Linux/Mac only)
        if os.name == 'posix':
            os.chmod(self.store_path, stat.S_IRUSR | stat.S_IWUSR)

    def _get_lock_path(self) -> str:
        return str(self.store_path) + '.lock'

    def _read_all(self) -> Dict[str, Any]:
        try:
            with open(self.store_path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Payment store unreadable, treating as empty: {e}")
            return {"records": {}}
        if not isinstance(data, dict) or not isinstance(data.get("records"), dict):
            return {"records": {}}
        return data

    def get(self, key: str) -> Optional[PaymentRecord]:
        """Return the record for key, or None if absent or malformed."""
        with portalocker.Lock(self._get_lock_path(), timeout=10):
            raw = self._read_all()["records"].get(key)
        if raw is None:
            return None
        try:
            return PaymentRecord.model_validate(raw)
        except ValidationError:
            logger.warning(f"Ignoring malformed payment record for {key}")
            return None

    def set(self, key: str, value: PaymentRecord) -> None:
        with portalocker.Lock(self._get_lock_path(), timeout=10):
            data = self._read_all()
            data["records"][key] = value.to_wire()
            temp_path = self.store_path.with_suffix('.tmp')
            with open(temp_path, 'w') as f:
                json.dump(data, f, indent=2)
            if os.name == 'posix':
                os.chmod(temp_path, stat.S_IRUSR | stat.S_IWUSR)
            os.replace(temp_path, self.store_path)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def record_payment(
    account_id: str,
    tx_hash: Optional[str] = None,
    amount: Optional[str] = None,
    chain_id: Optional[int] = None,
    storage: Optional[StorageAdapter] = None
) -> PaymentRecord:
    """
    Store the last successful payment for an account (last write wins)

    Args:
        account_id: Application account identifier
        tx_hash: Settlement or transfer hash
        amount: Amount paid
        chain_id: Chain the payment settled on
        storage: Storage adapter; defaults to JsonFileStorage

    Returns:
        The record written
    """
    store = storage if storage is not None else JsonFileStorage()
    record = PaymentRecord(
        last_payment_at=_isoformat(_now()),
        tx_hash=tx_hash or None,
        amount=amount or None,
        chain_id=chain_id
    )
    store.set(storage_key(account_id), record)
    return record


def get_payment_status(
    account_id: str,
    max_age_ms: int,
    storage: Optional[StorageAdapter] = None
) -> PaymentStatus:
    """
    Report whether the account paid within the last max_age_ms milliseconds
    """
    store = storage if storage is not None else JsonFileStorage()
    record = store.get(storage_key(account_id))
    if record is None:
        return PaymentStatus(valid=False)

    try:
        last_at = parse_timestamp(record.last_payment_at)
    except (AttributeError, ValueError):
        logger.warning(f"Ignoring payment record with invalid timestamp for {account_id}")
        return PaymentStatus(valid=False)
    expires = last_at + timedelta(milliseconds=max_age_ms)
    valid = expires > _now()
    return PaymentStatus(
        valid=valid,
        last_payment_at=record.last_payment_at,
        expired_at=None if valid else _isoformat(expires)
    )
