"""Platform-Level Interrupt Controller."""

from dataclasses import dataclass, field

SOURCE_COUNT = 32

_MASK32 = 0xFFFF_FFFF

PRIORITY_END = 0x00007C
PENDING_OFFSET = 0x001000
ENABLE_OFFSET = 0x002000
THRESHOLD_OFFSET = 0x200000
CLAIM_OFFSET = 0x200004


def _valid_source(source_id: int) -> bool:
    return 0 < source_id < SOURCE_COUNT


@dataclass
class Plic:
    """Level-triggered interrupt controller with claim/complete semantics."""

    priorities: list[int] = field(default_factory=lambda: [0] * SOURCE_COUNT)
    pending: int = 0
    enabled: int = 0
    threshold: int = 0
    claimed: int = 0
    ip: int = 0

    def read(self, addr: int) -> int:
        """Read a register; reading the claim register performs a claim."""
        if 0 <= addr <= PRIORITY_END:
            return self.priorities[addr // 4]
        if addr == PENDING_OFFSET:
            return self.pending
        if addr == ENABLE_OFFSET:
            return self.enabled
        if addr == THRESHOLD_OFFSET:
            return self.threshold
        if addr == CLAIM_OFFSET:
            return self.claim()
        return 0

    def write(self, addr: int, val: int) -> None:
        """Write a register; writing the claim register completes a source."""
        val &= _MASK32
        if 0 <= addr <= PRIORITY_END:
            self.priorities[addr // 4] = val
        elif addr == ENABLE_OFFSET:
            self.enabled = val
        elif addr == THRESHOLD_OFFSET:
            self.threshold = val
        elif addr == CLAIM_OFFSET:
            self.complete(val)

    def _candidates(self, mask: int):
        return (
            (source, self.priorities[source])
            for source in range(1, SOURCE_COUNT)
            if (mask >> source) & 1
        )

    def claim(self) -> int:
        """Claim the highest-priority pending source above threshold, or 0."""
        max_priority = 0
        max_id = 0
        for source, priority in self._candidates(
            self.pending & self.enabled & ~self.claimed
        ):
            if priority > max_priority:
                max_priority, max_id = priority, source

        if max_id > 0 and max_priority > self.threshold:
            self.pending &= ~(1 << max_id)
            self.claimed |= 1 << max_id
            return max_id
        return 0

    def complete(self, source_id: int) -> None:
        """Finish handling a source; re-pend it if its line is still high."""
        if _valid_source(source_id):
            self.claimed &= ~(1 << source_id)
            if (self.ip >> source_id) & 1:
                self.pending |= 1 << source_id

    def set_interrupt(self, source_id: int) -> None:
        """Raise the interrupt line of a source."""
        if _valid_source(source_id):
            self.ip |= 1 << source_id
            if not (self.claimed >> source_id) & 1:
                self.pending |= 1 << source_id

    def clear_interrupt(self, source_id: int) -> None:
        """Lower the interrupt line of a source."""
        if _valid_source(source_id):
            self.ip &= ~(1 << source_id)
            self.pending &= ~(1 << source_id)

    def get_interrupt_level(self) -> bool:
        """Whether an enabled pending source exceeds the threshold."""
        pending_enabled = self.pending & self.enabled
        if not pending_enabled:
            return False
        max_priority = max(
            (priority for _, priority in self._candidates(pending_enabled)),
            default=0,
        )
        return max_priority > self.threshold