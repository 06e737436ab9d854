"""
Verification Report

Read-only summary of a finished run, built from the task registry and the
runner's counters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .main import TestTask


@dataclass
class VerificationReport:
    """Outcome of one run, partitioned into verified and unverified tasks"""
    requested: int = 0
    tracked: int = 0
    verified: List[TestTask] = field(default_factory=list)
    unverified: List[TestTask] = field(default_factory=list)
    generation_failures: int = 0
    send_failures: int = 0
    duplicates_rejected: int = 0
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None
    timing: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_registry(
        cls,
        registry: Mapping[str, TestTask],
        stats: Optional[Dict[str, Any]] = None,
    ) -> "VerificationReport":
        """Summarize without touching the registry"""
        stats = stats or {}
        tasks = list(registry.values())
        return cls(
            requested=stats.get("requested", len(tasks)),
            tracked=len(tasks),
            verified=[t for t in tasks if t.is_verified],
            unverified=[t for t in tasks if not t.is_verified],
            generation_failures=stats.get("generation_failures", 0),
            send_failures=stats.get("send_failures", 0),
            duplicates_rejected=stats.get("duplicates_rejected", 0),
            start_offset=stats.get("start_offset"),
            end_offset=stats.get("current_offset"),
            timing=dict(stats.get("timing", {})),
        )

    @property
    def verified_count(self) -> int:
        return len(self.verified)

    @property
    def all_verified(self) -> bool:
        return not self.unverified

    @property
    def avg_latency_ms(self) -> Optional[int]:
        latencies = [t.latency_ms for t in self.verified if t.latency_ms is not None]
        if not latencies:
            return None
        return int(sum(latencies) / len(latencies))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "tracked": self.tracked,
            "verified": self.verified_count,
            "unverified": len(self.unverified),
            "generation_failures": self.generation_failures,
            "send_failures": self.send_failures,
            "duplicates_rejected": self.duplicates_rejected,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "avg_latency_ms": self.avg_latency_ms,
            "timing": self.timing,
            "tasks": [t.to_dict() for t in self.verified + self.unverified],
        }
