"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Normalise an ISO-8601 string or datetime to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        candidate = str(value).strip()
        if not candidate:
            return None
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp format: {value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class IndicatorRow:
    """One biodigester reading as stored by the ingestion side."""

    energy_generated: Optional[float] = None
    waste_processed: Optional[float] = None
    tax_savings: Optional[float] = None
    efficiency: Optional[float] = None
    measured_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    user_id: Optional[str] = None

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.measured_at if self.measured_at is not None else self.created_at

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "IndicatorRow":
        user_id = payload.get("user_id")
        return cls(
            energy_generated=_optional_float(payload.get("energy_generated")),
            waste_processed=_optional_float(payload.get("waste_processed")),
            tax_savings=_optional_float(payload.get("tax_savings")),
            efficiency=_optional_float(payload.get("efficiency")),
            measured_at=parse_timestamp(payload.get("measured_at")),
            created_at=parse_timestamp(payload.get("created_at")),
            user_id=str(user_id) if user_id is not None else None,
        )

    def to_mapping(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> dict[str, Any]:
        payload = self.to_mapping()
        for key in ("measured_at", "created_at"):
            value = payload[key]
            payload[key] = value.isoformat() if value is not None else None
        return payload


INDICATOR_COLUMNS = tuple(field.name for field in fields(IndicatorRow))
