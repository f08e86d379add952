"""Builders for synthetic events and calibration collections.

Tables are filled with weights so that a single fill can stand for many
entries: a joint cell filled once with ``weight=100`` reports 100 entries.
"""

from zdcq.calibration.naming import (
    ENERGY_TABLE_NAMES,
    N_ITERATIONS,
    N_STEPS,
    VERTEX_TABLE_NAMES,
    recentering_table_names,
    step_variable,
)
from zdcq.calibration.sources import InMemoryCalibrationSource
from zdcq.calibration.tables import (
    AxisProfileTable,
    JointSparseTable,
    RunCentralityTable,
    RunProfileTable,
)
from zdcq.core.events import CollisionEvent
from zdcq.core.histograms import Axis


RUN = 544124
TIMESTAMP = 1_700_000_000_000


def make_event(
    run_number=RUN,
    timestamp=TIMESTAMP,
    centrality=25.0,
    vx=0.0,
    vy=0.0,
    vz=1.0,
    has_zdc=True,
    towers=(10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0),
    common_a=40.0,
    common_c=40.0,
):
    return CollisionEvent(
        run_number=run_number,
        timestamp=timestamp,
        centrality=centrality,
        vx=vx,
        vy=vy,
        vz=vz,
        has_zdc=has_zdc,
        tower_energies=list(towers),
        common_energy_a=common_a,
        common_energy_c=common_c,
    )


def energy_tables(config, runs=(RUN,), centralities=(25.0,), common=4.0, tower=1.0):
    """Energy slot tables with gain ratio ``0.25 * common / tower``.

    With the defaults the ratio is 1 and equalisation leaves energies unchanged.
    """
    axis = Axis.from_config(config.axes.centrality)
    tables = {}
    for t, name in enumerate(ENERGY_TABLE_NAMES):
        table = RunCentralityTable(name, axis)
        value = common if t in (0, 5) else tower
        for run in runs:
            for cent in centralities:
                table.fill(run, cent, value)
        tables[name] = table
    return tables


def vertex_tables(runs=(RUN,), mean_vx=0.0, mean_vy=0.0):
    tables = {}
    for name, value in zip(VERTEX_TABLE_NAMES, (mean_vx, mean_vy)):
        table = RunProfileTable(name)
        for run in runs:
            table.fill(run, value)
        tables[name] = table
    return tables


def recentering_tables(config, step, correction=(0.0, 0.0, 0.0, 0.0),
                       centrality=25.0, vx=0.0, vy=0.0, vz=1.0, entries=None):
    """Tables of one recentering step giving ``correction`` at one event position.

    Joint (step 0) cells get ``entries`` entries, by default exactly
    ``min_entries_sparse_bin``.
    """
    if entries is None:
        entries = config.calibration.min_entries_sparse_bin
    axes = config.axes
    coordinates = {"centrality": centrality, "vx": vx, "vy": vy, "vz": vz}
    profile_axes = {
        "centrality": Axis.from_config(axes.centrality),
        "vx": Axis.from_config(axes.vx),
        "vy": Axis.from_config(axes.vy),
        "vz": Axis.from_config(axes.vz),
    }

    tables = {}
    for c, name in enumerate(recentering_table_names(step)):
        if step == 0:
            table = JointSparseTable(
                name,
                Axis.from_config(axes.centrality_coarse),
                Axis.from_config(axes.vx_coarse),
                Axis.from_config(axes.vy_coarse),
                Axis.from_config(axes.vz_coarse),
                q_axis=Axis.from_config(axes.q),
            )
            table.fill(centrality, vx, vy, vz, correction[c], weight=entries)
        else:
            variable = step_variable(step)
            table = AxisProfileTable(name, profile_axes[variable], variable)
            table.fill(coordinates[variable], correction[c])
        tables[name] = table
    return tables


def all_slots():
    return [(i, s) for i in range(1, N_ITERATIONS + 1) for s in range(N_STEPS)]


def make_source(config, slots=(), correction=(0.0, 0.0, 0.0, 0.0), energy=True,
                vertex=True, event=None, **table_kwargs):
    """In-memory source holding the requested slots.

    ``slots`` lists recentering (iteration, step) pairs; each gets tables
    yielding ``correction`` at the position of ``event``.
    """
    event = event or make_event()
    source = InMemoryCalibrationSource()
    calibration = config.calibration

    if energy:
        source.add(calibration.energy, energy_tables(config, runs=(event.run_number,),
                                                     centralities=(event.centrality,)))
    if vertex:
        source.add(calibration.mean_vertex, vertex_tables(runs=(event.run_number,)))

    for iteration, step in slots:
        identifier = calibration.recentering[iteration - 1][step]
        source.add(identifier, recentering_tables(
            config, step, correction,
            centrality=event.centrality, vx=event.vx, vy=event.vy, vz=event.vz,
            **table_kwargs,
        ))
    return source
