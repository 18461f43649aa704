"""
Logical clock abstraction

The engine never reads wall-clock time. Deadlines are measured in blocks
(or any monotonically non-decreasing counter) supplied by an external
source through the LogicalClock protocol.

Fun fact: Leslie Lamport's 1978 paper on logical clocks showed that
ordering events does not need synchronized physical clocks at all -
a counter that only goes up is enough.
"""

from typing import Protocol

from simple_dao.kernel.errors import ClockRegression


class LogicalClock(Protocol):
    """Protocol for block-height sources"""

    def now(self) -> int:
        """Return the current block height"""
        ...


class ManualClock:
    """
    Controllable logical clock for tests, demos and the CLI

    Refuses to move backwards, so deadline checks observe the same
    monotonic ordering a real chain would give them.
    """

    def __init__(self, initial_block: int = 0) -> None:
        """
        Initialize at a given block

        Args:
            initial_block: Starting block height (defaults to genesis)
        """
        if initial_block < 0:
            raise ClockRegression(0, initial_block)
        self._block = initial_block

    def now(self) -> int:
        """Return current block height"""
        return self._block

    def set_block(self, block: int) -> None:
        """Jump to ``block``; equal readings are allowed"""
        if block < self._block:
            raise ClockRegression(self._block, block)
        self._block = block

    def advance(self, blocks: int = 1) -> int:
        """Advance by ``blocks`` and return the new height"""
        self.set_block(self._block + blocks)
        return self._block
