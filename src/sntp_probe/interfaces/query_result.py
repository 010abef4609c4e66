"""
Query Result Data Model

The QueryResult is the contract between sntp-probe and whatever applies
the offset to the system clock. It can be serialized to JSON for scripts
that consume the measurement out of process.

Contract Version: 1.0.0
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional
import json
import time

from ..output.adjustment import AdjustmentInterval, to_interval


@dataclass
class QueryResult:
    """
    Outcome of one SNTP measurement session.

    Offsets are remote minus local: a positive offset means the local clock
    is behind the server.
    """
    server: str
    port: int = 123

    # Primary output (ns)
    offset_ns: int = 0
    delay_ns: int = 0
    jitter_s: float = 0.0

    # Measurement context
    precision_s: float = 0.0
    samples: int = 0
    attempts: int = 0
    failures: List[str] = field(default_factory=list)

    version: str = "1.0.0"
    generated_at: float = field(default_factory=time.time)

    @property
    def offset_s(self) -> float:
        return self.offset_ns / 1e9

    @property
    def delay_s(self) -> float:
        return self.delay_ns / 1e9

    @property
    def adjustment(self) -> AdjustmentInterval:
        """Offset as a timeval-shaped interval for adjtime(2)."""
        return to_interval(self.offset_ns)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['offset_s'] = self.offset_s
        data['delay_s'] = self.delay_s
        return data

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "QueryResult":
        """Deserialize from JSON, ignoring derived fields."""
        data = json.loads(json_str)
        return cls(
            server=data["server"],
            port=data.get("port", 123),
            offset_ns=data.get("offset_ns", 0),
            delay_ns=data.get("delay_ns", 0),
            jitter_s=data.get("jitter_s", 0.0),
            precision_s=data.get("precision_s", 0.0),
            samples=data.get("samples", 0),
            attempts=data.get("attempts", 0),
            failures=list(data.get("failures", [])),
            version=data.get("version", "1.0.0"),
            generated_at=data.get("generated_at", time.time()),
        )
