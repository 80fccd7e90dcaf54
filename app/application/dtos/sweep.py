"""DTOs for the reminder and SLA sweeps."""

from dataclasses import dataclass, field


@dataclass
class SweepResult:
    """Counts from one sweep run. Failures are approval ids whose handling raised."""

    sweep: str
    scanned: int = 0
    reminded: int = 0
    warned: int = 0
    escalated: int = 0
    missing_backup: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def total_actions(self) -> int:
        """Total number of state changes applied by the sweep."""
        return self.reminded + self.warned + self.escalated
