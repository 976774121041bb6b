"""LangGraph state definition for generation runs."""

from dataclasses import dataclass
from typing import TypedDict

from models.enums import RunOutcome


class GenerationState(TypedDict, total=False):
    """State carried between graph nodes during one run.

    Fields are grouped logically:
    - Identity: mode, novel_id
    - Inputs: novel_config, outline
    - Working copy: chapters (accumulated plan or the streak's local copy)
    - Planning: target_count, batch_size, empty_batches
    - Streak: start_index, run_length, position
    - Control: completed, phase, cancelled, exhausted, error, last_node
    """

    # Identity
    mode: str  # "plan" or "streak"
    novel_id: str

    # Inputs
    novel_config: object  # NovelConfig
    outline: str

    # Working copy, never shared with the document; snapshots are published
    chapters: list

    # Planning
    target_count: int
    batch_size: int
    empty_batches: int

    # Streak
    start_index: int
    run_length: int
    position: int  # index within the run

    # Control flow
    completed: int
    phase: str
    cancelled: bool
    exhausted: bool
    error: str
    last_node: str


@dataclass
class RunResult:
    """Terminal report of one planning or streak run."""
    outcome: RunOutcome
    completed: int
    total: int
    error: str = ""
    exhausted: bool = False  # stopped early at the end of the chapter list

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.COMPLETED
