"""Heart data repository: CRUD operations for the encrypted data bank.

The repository mediates between engine records (MetricSample,
SymptomEntry, UserProfile, AlertEvent) and the SQLite database, using
FieldEncryptor for the profile, symptom check-ins and sync payloads.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Iterable

from cardioguard.core.storage.database import HealthDatabase
from cardioguard.core.storage.encryption import EncryptionError, FieldEncryptor
from cardioguard.core.storage.models import StoredAlert, StoredSync
from cardioguard.domains.heart_failure.domain_logic.models import (
    AlertEvent,
    MetricSample,
    MetricType,
    SymptomEntry,
    UserProfile,
)
from cardioguard.domains.heart_failure.sync.codec import (
    SyncPayloadError,
    decode_profile,
    decode_symptom,
    encode_profile,
    encode_symptom,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def _db_timestamp(moment: datetime) -> str:
    """Fixed-width UTC timestamp so text comparison matches time order."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _from_db_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


class HeartRepository:
    """CRUD repository for the CardioGuard data bank.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        encryptor = FieldEncryptor(key="...")
        repo = HeartRepository(db, encryptor)

        repo.save_metrics(samples)
        recent = repo.get_metrics(MetricType.HEART_RATE, start, end)
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return _db_timestamp(datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Metric samples (unencrypted, indexed)
    # ------------------------------------------------------------------

    def save_metrics(self, samples: Iterable[MetricSample]) -> int:
        """Persist metric samples. Returns the number of rows written."""
        conn = self._db.connection
        rows = [
            (
                self._new_id(),
                _db_timestamp(s.timestamp),
                s.metric_type.value,
                float(s.value),
                s.unit or s.metric_type.default_unit,
            )
            for s in samples
        ]
        if not rows:
            return 0
        conn.executemany(
            """INSERT INTO metric_samples (id, timestamp, metric_type, value, unit)
               VALUES (?, ?, ?, ?, ?)""",
            rows,
        )
        conn.commit()
        logger.info("Saved %d metric samples", len(rows))
        return len(rows)

    def save_metric(self, sample: MetricSample) -> None:
        self.save_metrics([sample])

    def get_metrics(
        self,
        metric_type: MetricType | None,
        start: datetime,
        end: datetime,
    ) -> list[MetricSample]:
        """Samples with ``start <= timestamp <= end``, oldest first.

        Args:
            metric_type: Restrict to one metric type; None returns all.
            start: Inclusive lower bound.
            end: Inclusive upper bound.
        """
        conditions = ["timestamp >= ?", "timestamp <= ?"]
        params: list[Any] = [_db_timestamp(start), _db_timestamp(end)]
        if metric_type is not None:
            conditions.append("metric_type = ?")
            params.append(MetricType(metric_type).value)

        query = (
            "SELECT timestamp, metric_type, value, unit FROM metric_samples "
            f"WHERE {' AND '.join(conditions)} ORDER BY timestamp ASC"
        )
        rows = self._db.connection.execute(query, params).fetchall()

        samples = []
        for row in rows:
            try:
                samples.append(MetricSample(
                    timestamp=_from_db_timestamp(row[0]),
                    metric_type=MetricType(row[1]),
                    value=row[2],
                    unit=row[3] or "",
                ))
            except ValueError:
                logger.warning("Skipping unreadable metric row (type=%r)", row[1])
        return samples

    def count_metrics(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM metric_samples").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Symptom check-ins (encrypted, one per day)
    # ------------------------------------------------------------------

    def upsert_symptom_entry(self, entry: SymptomEntry) -> None:
        """Store a check-in, replacing any existing entry for the same day."""
        conn = self._db.connection
        conn.execute(
            """INSERT INTO symptom_entries (entry_date, payload_enc, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(entry_date) DO UPDATE SET
                   payload_enc = excluded.payload_enc,
                   updated_at = excluded.updated_at""",
            (entry.date.isoformat(), self._enc.encrypt(encode_symptom(entry)), self._now_iso()),
        )
        conn.commit()
        logger.info("Saved symptom check-in for %s", entry.date.isoformat())

    def get_symptom_entries(self, first_day: date, last_day: date) -> list[SymptomEntry]:
        """Check-ins with ``first_day <= date <= last_day``, oldest first.

        Raises:
            RepositoryError: If a stored row cannot be decrypted or decoded.
        """
        rows = self._db.connection.execute(
            """SELECT entry_date, payload_enc FROM symptom_entries
               WHERE entry_date >= ? AND entry_date <= ?
               ORDER BY entry_date ASC""",
            (first_day.isoformat(), last_day.isoformat()),
        ).fetchall()

        entries = []
        for row in rows:
            try:
                entries.append(decode_symptom(self._enc.decrypt(row[1])))
            except (EncryptionError, SyncPayloadError) as exc:
                raise RepositoryError(f"Unreadable symptom entry for {row[0]}: {exc}") from exc
        return entries

    # ------------------------------------------------------------------
    # Profile (encrypted, single row)
    # ------------------------------------------------------------------

    def save_profile(self, profile: UserProfile) -> None:
        conn = self._db.connection
        conn.execute(
            """INSERT INTO user_profile (id, profile_enc, updated_at) VALUES (1, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   profile_enc = excluded.profile_enc,
                   updated_at = excluded.updated_at""",
            (self._enc.encrypt(encode_profile(profile)), self._now_iso()),
        )
        conn.commit()
        logger.info("Saved user profile (type=%s)", profile.heart_failure_type.value)

    def load_profile(self) -> UserProfile | None:
        """The stored profile, or None if onboarding has not been completed.

        Raises:
            RepositoryError: If the stored profile cannot be decrypted or decoded.
        """
        row = self._db.connection.execute(
            "SELECT profile_enc FROM user_profile WHERE id = 1"
        ).fetchone()
        if row is None:
            return None
        try:
            return decode_profile(self._enc.decrypt(row[0]))
        except (EncryptionError, SyncPayloadError) as exc:
            raise RepositoryError(f"Unreadable user profile: {exc}") from exc

    # ------------------------------------------------------------------
    # Alert history
    # ------------------------------------------------------------------

    def save_alert(self, event: AlertEvent) -> str:
        """Record a fired alert. Returns the alert ID."""
        alert_id = self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO alert_history
               (id, timestamp, kind, title, message, was_red_risk, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                alert_id,
                _db_timestamp(event.evaluated_at),
                event.kind.value,
                event.title,
                event.message,
                1 if event.is_high_urgency else 0,
                self._now_iso(),
            ),
        )
        conn.commit()
        return alert_id

    def get_alert_history(self, *, since: datetime | None = None, limit: int = 50) -> list[StoredAlert]:
        """Recorded alerts, newest first."""
        params: list[Any] = []
        query = "SELECT id, timestamp, kind, title, message, was_red_risk, created_at FROM alert_history"
        if since is not None:
            query += " WHERE timestamp >= ?"
            params.append(_db_timestamp(since))
        query += " ORDER BY timestamp DESC, created_at DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [
            StoredAlert(
                id=row[0],
                timestamp=row[1],
                kind=row[2],
                title=row[3],
                message=row[4],
                was_red_risk=bool(row[5]),
                created_at=row[6] or "",
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Device sync store (encrypted, latest payload per device)
    # ------------------------------------------------------------------

    def upsert_sync(self, device_id: str, payload: dict[str, Any], sync_code: str | None = None) -> StoredSync:
        """Replace the stored payload for ``device_id``.

        The sync code is trimmed; a blank code clears the index entry.
        """
        if not device_id or not device_id.strip():
            raise RepositoryError("device_id must not be empty")
        code = sync_code.strip() if sync_code and sync_code.strip() else None
        synced_at = self._now_iso()

        conn = self._db.connection
        conn.execute(
            """INSERT INTO sync_payloads (device_id, sync_code, payload_enc, last_synced_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(device_id) DO UPDATE SET
                   sync_code = excluded.sync_code,
                   payload_enc = excluded.payload_enc,
                   last_synced_at = excluded.last_synced_at""",
            (device_id, code, self._enc.encrypt(payload), synced_at),
        )
        conn.commit()
        logger.info("Stored sync payload (has_code=%s)", code is not None)
        return StoredSync(device_id=device_id, payload=payload, sync_code=code, last_synced_at=synced_at)

    def get_sync_by_device_id(self, device_id: str) -> StoredSync | None:
        row = self._db.connection.execute(
            "SELECT device_id, sync_code, payload_enc, last_synced_at FROM sync_payloads WHERE device_id = ?",
            (device_id,),
        ).fetchone()
        return self._row_to_sync(row) if row is not None else None

    def get_sync_by_sync_code(self, sync_code: str) -> StoredSync | None:
        """Most recent payload registered under ``sync_code`` (trimmed)."""
        code = (sync_code or "").strip()
        if not code:
            return None
        row = self._db.connection.execute(
            """SELECT device_id, sync_code, payload_enc, last_synced_at FROM sync_payloads
               WHERE sync_code = ? ORDER BY last_synced_at DESC LIMIT 1""",
            (code,),
        ).fetchone()
        return self._row_to_sync(row) if row is not None else None

    def _row_to_sync(self, row: Any) -> StoredSync:
        try:
            payload = self._enc.decrypt(row[2]) or {}
        except EncryptionError as exc:
            raise RepositoryError(f"Unreadable sync payload: {exc}") from exc
        return StoredSync(
            device_id=row[0],
            payload=payload,
            sync_code=row[1],
            last_synced_at=row[3],
        )
