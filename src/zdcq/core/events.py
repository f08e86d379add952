"""Per-event input and output records.

CollisionEvent is what the event loader produces; OutputRecord is the
one-per-event result. OUTPUT_COLUMNS fixes the output column order, which
downstream consumers rely on.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CollisionEvent(BaseModel):
    """One reconstructed collision with its ZDC deposits.

    ``tower_energies`` holds the 8 individual towers, A0..A3 then C0..C3.
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    run_number: int
    timestamp: int = Field(..., description="Milliseconds, selects the calibration validity window")
    centrality: float
    vx: float
    vy: float
    vz: float
    has_zdc: bool = True
    tower_energies: List[float]
    common_energy_a: float
    common_energy_c: float

    @field_validator("tower_energies")
    @classmethod
    def check_towers(cls, v):
        if len(v) != 8:
            raise ValueError(f"tower_energies needs 8 values (A0..A3, C0..C3), got {len(v)}")
        return v

    @property
    def vertex(self) -> tuple:
        return (self.vx, self.vy, self.vz)


class OutputRecord(BaseModel):
    """Final per-event Q-vector.

    ``reached_iteration``/``reached_step`` say which stage the vector
    belongs to; (0, 0) is the vector right after gain equalisation.
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    run_number: int
    centrality: float
    vx: float
    vy: float
    vz: float
    qxa: float
    qya: float
    qxc: float
    qyc: float
    selected: bool
    reached_iteration: int
    reached_step: int

    @classmethod
    def rejected(cls, event: CollisionEvent, vertex=None) -> "OutputRecord":
        """Zero-vector record for an event that did not make it to the Q-vector."""
        vx, vy, vz = vertex if vertex is not None else event.vertex
        return cls(
            run_number=event.run_number,
            centrality=event.centrality,
            vx=vx, vy=vy, vz=vz,
            qxa=0.0, qya=0.0, qxc=0.0, qyc=0.0,
            selected=False,
            reached_iteration=0,
            reached_step=0,
        )

    @property
    def q(self) -> tuple:
        return (self.qxa, self.qya, self.qxc, self.qyc)


OUTPUT_COLUMNS = list(OutputRecord.model_fields)
