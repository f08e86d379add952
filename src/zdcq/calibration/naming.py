"""Table names shared by the statistics producer and the calibration consumer.

A job's statistics become the next job's calibration tables only if both
sides agree on these names, so they are defined once here.
"""

from zdcq.calibration.tables import (
    AxisProfileTable,
    JointSparseTable,
    RunCentralityTable,
    RunProfileTable,
)

SIDES = ("A", "C")
COORDS = ("X", "Y")

# Stage vector component order
COMPONENTS = tuple(f"Q{coord}{side}" for side in SIDES for coord in COORDS)  # QXA, QYA, QXC, QYC

N_ITERATIONS = 5
N_STEPS = 5

ENERGY_SLOT = (0, 0)
VERTEX_SLOT = (0, 1)

# Tower 0 of each side is the common channel, 1..4 the individual sectors
ENERGY_TOWERS = 10
ENERGY_KIND = RunCentralityTable.kind
VERTEX_KIND = RunProfileTable.kind


def energy_table_name(tower: int) -> str:
    side = SIDES[0] if tower < 5 else SIDES[1]
    return f"hZN{side}_mean_t{tower % 5}_cent"


ENERGY_TABLE_NAMES = [energy_table_name(t) for t in range(ENERGY_TOWERS)]

VERTEX_TABLE_NAMES = ["hvertex_vx", "hvertex_vy"]
VERTEX_BOOTSTRAP_NAMES = ["hvertex_vx", "hvertex_vy", "hvertex_vz"]

# One entry per recentering step: (name suffix, table kind, event coordinate)
STEP_TABLES = (
    ("mean_Cent_V_run", JointSparseTable.kind, None),
    ("mean_cent_run", AxisProfileTable.kind, "centrality"),
    ("mean_vx_run", AxisProfileTable.kind, "vx"),
    ("mean_vy_run", AxisProfileTable.kind, "vy"),
    ("mean_vz_run", AxisProfileTable.kind, "vz"),
)


def recentering_table_names(step: int) -> list:
    """The four tables (QXA, QYA, QXC, QYC order) consumed by a recentering step."""
    suffix = STEP_TABLES[step][0]
    return [f"h{component}_{suffix}" for component in COMPONENTS]


def recentering_kind(step: int) -> str:
    return STEP_TABLES[step][1]


def step_variable(step: int):
    return STEP_TABLES[step][2]
