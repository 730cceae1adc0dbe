from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class BetStatus(str, Enum):
    won = "Выиграна"
    lost = "Проиграна"
    pending = "Нерасчитана"    # Outcome not determined yet

    @classmethod
    def coerce(cls, value: Any) -> "BetStatus":
        """Map untrusted input onto the enum; anything unknown is pending."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.pending


class Bet(BaseModel):
    """One tracked wager.

    Records travel as plain dicts through the store and the statistics
    engine so that unknown fields survive a round trip; this model is the
    canonical shape produced by the import normalizer and returned to typed
    callers.

    win_value depends on status:

    won:
        gross payout (stake * coef); net result is win_value - stake_value
    lost:
        negative amount lost, or omitted/0 meaning "the whole stake"
    pending:
        ignored, always counts as 0
    """
    model_config = ConfigDict(extra="allow")

    id: str
    match: str = ""
    bet: str = ""
    status: BetStatus = BetStatus.pending
    stake_value: float = 0.0
    stake_currency: str = "USDT"
    coef: float = 0.0
    win_value: float = 0.0
    win_currency: Optional[str] = None          # Defaults to stake_currency
    added_date: Optional[str] = None            # DD/MM/YYYY, set on creation
    time: Optional[Any] = None                  # Display only, never parsed

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ExchangeRate(BaseModel):
    rubPerUsdt: float
    updatedAt: int = 0


class RateUpdateRequest(BaseModel):
    rubPerUsdt: Any = None


class StatusChangeRequest(BaseModel):
    status: str


class MetaResponse(BaseModel):
    updatedAt: int
