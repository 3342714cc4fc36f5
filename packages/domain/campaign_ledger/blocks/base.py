"""Base classes for report computation blocks.

This module provides the foundation for the blocks architecture:
- Block abstract base class
- BlockContext for passing frames between blocks
- BlockExecutor for dependency resolution and execution
- Topological sort for DAG execution order
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Keyed store that blocks read inputs from and write frames to.

    Example:
        context = BlockContext()
        context.set("ledger_report", service.report())

        LedgerFrameBlock().execute(context)
        investments_df = context.get("investments_frame")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Raises KeyError listing the available keys when ``key`` is missing."""
        if key not in self._data:
            raise KeyError(f"Key '{key}' not found in context. Available keys: {self.keys()}")
        return self._data[key]

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data)


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """A reusable computation unit with declared inputs and outputs.

    Subclasses name the context keys they read (``inputs``) and write
    (``outputs``); the executor uses those declarations to order blocks and
    to check that every declared output was actually produced.
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from context, compute, write outputs to context."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when blocks depend on each other's outputs in a cycle."""


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so every producer runs before its consumers (Kahn's algorithm).

    Inputs not produced by any block are expected in the initial context.
    Blocks with no ordering constraint between them keep their given order.

    Raises:
        ValueError: Two blocks declare the same output key
        CircularDependencyError: The dependency graph has a cycle
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for key in block.outputs():
            if key in producers:
                raise ValueError(f"Multiple blocks produce '{key}': {producers[key]} and {block}")
            producers[key] = block

    in_degree: Dict[Block, int] = {block: 0 for block in blocks}
    dependents: Dict[Block, List[Block]] = {block: [] for block in blocks}
    for block in blocks:
        for key in block.inputs():
            producer = producers.get(key)
            if producer is not None:
                dependents[producer].append(block)
                in_degree[block] += 1

    ready: Deque[Block] = deque(block for block in blocks if in_degree[block] == 0)
    ordered: List[Block] = []
    while ready:
        current = ready.popleft()
        ordered.append(current)
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if in_degree[block] > 0]
        raise CircularDependencyError(f"Circular dependency detected among blocks: {stuck}")

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Runs blocks in dependency order against one context.

    Example:
        executor = BlockExecutor([
            CampaignBalanceBlock(),
            CampaignStatsBlock(),
            LedgerFrameBlock(),
        ])
        context = BlockContext()
        context.set("ledger_report", service.report())
        executor.execute(context)

        stats_df = context.get("campaign_stats_frame")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._order: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Execute all blocks.

        Raises:
            CircularDependencyError: Blocks depend on each other in a cycle
            KeyError: A required input is missing from the context
            ValueError: A block did not write one of its declared outputs
        """
        if self._order is None:
            self._order = topological_sort(self.blocks)

        for block in self._order:
            missing = [key for key in block.inputs() if not context.has(key)]
            if missing:
                raise KeyError(
                    f"Block {block} requires {missing} but they are not in context. "
                    f"Available keys: {context.keys()}"
                )

            block.execute(context)

            unwritten = [key for key in block.outputs() if not context.has(key)]
            if unwritten:
                raise ValueError(f"Block {block} declared outputs {unwritten} but didn't write them")

        return context
