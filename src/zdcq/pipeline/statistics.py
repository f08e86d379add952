"""QA histograms and bootstrap statistics.

The registry books every accumulator a job fills. Two purposes:

- QA: per-stage scatter plots, profiles and event-plane angles
- Bootstrap: the inputs of each correction step, booked under exactly the
  names the step consumes, so ``export_collection("step2/")`` is the
  calibration for step 1 of the next round

Layout::

    Energy/hZN{A,C}_mean_t{0..4}_cent       run x centrality energy means
    vmean/hvertex_v{x,y,z}                  run mean vertex
    QA/centrality_before, QA/centrality_after
    QA/ZN{A,C}_Energy                       raw (bins 0-3) and equalized (4-7)
    hStep, hIteration                       reached stage
    step{k}/hZN{A,C}_Qx_vs_Qy               k = 0..5
    step{k}/QA/...                          profiles and event-plane angles
    step1/hQ{X,Y}{A,C}_mean_Cent_V_run      input of step 0 (iteration 1)
    step2/..._mean_cent_run                 input of step 1
    step3/..._mean_vx_run                   input of step 2
    step4/..._mean_vy_run                   input of step 3
    step5/..._mean_vz_run                   input of step 4
    step5/hQ{X,Y}{A,C}_mean_Cent_V_run      input of step 0 (next iteration)
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, TYPE_CHECKING, Union

import numpy as np
import xarray as xr

from zdcq.calibration.naming import (
    COMPONENTS,
    COORDS,
    ENERGY_TABLE_NAMES,
    N_STEPS,
    SIDES,
    STEP_TABLES,
    VERTEX_BOOTSTRAP_NAMES,
    recentering_table_names,
)
from zdcq.calibration.serialize import collection_to_dataset
from zdcq.calibration.tables import (
    AxisProfileTable,
    JointSparseTable,
    RunCentralityTable,
    RunProfileTable,
    TABLE_KINDS,
)
from zdcq.core.histograms import Axis, Hist1D, Hist2D
from zdcq.zdc.qvector import event_plane_angles

if TYPE_CHECKING:
    from zdcq.schemas import InternalConfig
    from zdcq.calibration.store import Frontier
    from zdcq.zdc.recentering import StageGrid

__all__ = ['StatisticsRegistry']

logger = logging.getLogger(__name__)

# (name, first component, second component) of the A x C correlations
CORRELATIONS = [
    (f"hQ{c1}A_Q{c2}C_vs_cent", COMPONENTS.index(f"Q{c1}A"), COMPONENTS.index(f"Q{c2}C"))
    for c1 in COORDS for c2 in COORDS
]


class StatisticsRegistry:
    """Named accumulators of one job, filled under a lock."""

    def __init__(self, config: "InternalConfig"):
        self.config = config
        axes = config.axes
        self.axis_cent = Axis.from_config(axes.centrality)
        self.axis_cent10 = Axis.from_config(axes.centrality_coarse)
        self.axis_q = Axis.from_config(axes.q)
        self.axis_psi = Axis.from_config(axes.psi)
        self.axis_vx = Axis.from_config(axes.vx)
        self.axis_vy = Axis.from_config(axes.vy)
        self.axis_vz = Axis.from_config(axes.vz)
        self.joint_axes = (
            self.axis_cent10,
            Axis.from_config(axes.vx_coarse),
            Axis.from_config(axes.vy_coarse),
            Axis.from_config(axes.vz_coarse),
        )

        self._objects: Dict[str, object] = {}
        self._lock = threading.Lock()
        self._book()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------
    def _add(self, name: str, obj):
        obj.name = name
        self._objects[name] = obj
        return obj

    def _profile(self, name: str, axis: Axis, variable: str) -> AxisProfileTable:
        return self._add(name, AxisProfileTable(name, axis, variable))

    def _joint(self, name: str) -> JointSparseTable:
        return self._add(name, JointSparseTable(name, *self.joint_axes, q_axis=self.axis_q))

    def _book(self):
        for table in ENERGY_TABLE_NAMES:
            self._add(f"Energy/{table}", RunCentralityTable(table, self.axis_cent))
        for table in VERTEX_BOOTSTRAP_NAMES:
            self._add(f"vmean/{table}", RunProfileTable(table))

        self._add("QA/centrality_before", Hist1D("centrality_before", Axis(200, 0, 100)))
        self._add("QA/centrality_after", Hist1D("centrality_after", Axis(200, 0, 100)))
        for side in SIDES:
            self._profile(f"QA/ZN{side}_Energy", Axis(8, 0, 8), "tower")

        self._add("hStep", Hist1D("hStep", Axis(10, 0, 10)))
        self._add("hIteration", Hist1D("hIteration", Axis(10, 0, 10)))

        variables = (
            ("cent", self.axis_cent10, "centrality"),
            ("vx", self.axis_vx, "vx"),
            ("vy", self.axis_vy, "vy"),
            ("vz", self.axis_vz, "vz"),
        )
        for k in range(N_STEPS + 1):
            for side in SIDES:
                self._add(f"step{k}/hZN{side}_Qx_vs_Qy", Hist2D("", self.axis_q, self.axis_q))
            for name, _, _ in CORRELATIONS:
                self._profile(f"step{k}/QA/{name}", self.axis_cent10, "centrality")
            for component in COMPONENTS:
                for label, axis, variable in variables:
                    self._profile(f"step{k}/QA/h{component}_vs_{label}", axis, variable)
            for plane in ("A", "C", "Full"):
                self._add(f"step{k}/QA/hSPplane{plane}", Hist2D("", self.axis_psi, self.axis_cent10))

        # Bootstrap inputs of the correction steps
        for name in recentering_table_names(0):
            self._joint(f"step1/{name}")
            self._joint(f"step{N_STEPS}/{name}")
        step_axes = {"centrality": self.axis_cent, "vx": self.axis_vx, "vy": self.axis_vy, "vz": self.axis_vz}
        for step in range(1, N_STEPS):
            variable = STEP_TABLES[step][2]
            for name in recentering_table_names(step):
                self._profile(f"step{step + 1}/{name}", step_axes[variable], variable)

        logger.debug("Statistics registry booked %d objects", len(self._objects))

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def get(self, name: str):
        return self._objects[name]

    def __contains__(self, name: str) -> bool:
        return name in self._objects

    @property
    def names(self) -> List[str]:
        return list(self._objects)

    # ------------------------------------------------------------------
    # Filling
    # ------------------------------------------------------------------
    def fill_centrality_before(self, centrality: float) -> None:
        with self._lock:
            self._objects["QA/centrality_before"].fill(centrality)

    def fill_energy_means(self, run: int, centrality: float, raw, common_a: float,
                          common_c: float, hit_a: bool, hit_c: bool) -> None:
        """Per-tower energy vs (run, centrality) for every hit side."""
        raw = np.asarray(raw, dtype=float)
        sides = []
        if hit_a:
            sides.append((0, common_a, raw[:4]))
        if hit_c:
            sides.append((5, common_c, raw[4:]))
        with self._lock:
            for offset, common, sectors in sides:
                self._objects[f"Energy/{ENERGY_TABLE_NAMES[offset]}"].fill(run, centrality, common)
                for t in range(4):
                    self._objects[f"Energy/{ENERGY_TABLE_NAMES[offset + t + 1]}"].fill(run, centrality, sectors[t])

    def fill_vertex(self, run: int, vx: float, vy: float, vz: float) -> None:
        with self._lock:
            for name, value in zip(VERTEX_BOOTSTRAP_NAMES, (vx, vy, vz)):
                self._objects[f"vmean/{name}"].fill(run, value)

    def fill_energy_qa(self, raw, equalized) -> None:
        raw = np.asarray(raw, dtype=float)
        equalized = np.asarray(equalized, dtype=float)
        with self._lock:
            for s, side in enumerate(SIDES):
                profile = self._objects[f"QA/ZN{side}_Energy"]
                for i in range(4):
                    profile.fill(i + 0.5, raw[4 * s + i])
                    profile.fill(i + 4.5, equalized[4 * s + i])

    def _fill_stage_qa(self, k: int, q, centrality: float, vx: float, vy: float, vz: float) -> None:
        objects = self._objects
        objects[f"step{k}/hZNA_Qx_vs_Qy"].fill(q[0], q[1])
        objects[f"step{k}/hZNC_Qx_vs_Qy"].fill(q[2], q[3])

        for name, a, c in CORRELATIONS:
            objects[f"step{k}/QA/{name}"].fill(centrality, q[a] * q[c])

        for i, component in enumerate(COMPONENTS):
            objects[f"step{k}/QA/h{component}_vs_cent"].fill(centrality, q[i])
            objects[f"step{k}/QA/h{component}_vs_vx"].fill(vx, q[i])
            objects[f"step{k}/QA/h{component}_vs_vy"].fill(vy, q[i])
            objects[f"step{k}/QA/h{component}_vs_vz"].fill(vz, q[i])

        psi_a, psi_c, psi_full = event_plane_angles(q)
        objects[f"step{k}/QA/hSPplaneA"].fill(psi_a, centrality)
        objects[f"step{k}/QA/hSPplaneC"].fill(psi_c, centrality)
        objects[f"step{k}/QA/hSPplaneFull"].fill(psi_full, centrality)

    def _fill_step_input(self, k: int, q, centrality: float, vx: float, vy: float, vz: float) -> None:
        """Bootstrap table consumed by step ``k`` (booked under step{k+1}/)."""
        coordinates = {"centrality": centrality, "vx": vx, "vy": vy, "vz": vz}
        for i, name in enumerate(recentering_table_names(k)):
            table = self._objects[f"step{k + 1}/{name}"]
            if k == 0:
                table.fill(centrality, vx, vy, vz, q[i])
            else:
                table.fill(coordinates[table.variable], q[i])

    def fill_event(self, grid: "StageGrid", frontier: "Frontier",
                   centrality: float, vx: float, vy: float, vz: float) -> None:
        """Fill QA and bootstrap statistics of a selected event.

        QA is filled for the raw vector and for stages 1..s of the reached
        iteration. Bootstrap tables are filled for every step input up to the
        first step not applied; with no recentering only the step-0 input.
        """
        i, s = frontier.iteration, frontier.step
        with self._lock:
            self._fill_stage_qa(0, grid.raw, centrality, vx, vy, vz)

            if i == 0:
                self._fill_step_input(0, grid.raw, centrality, vx, vy, vz)
                self._objects["hIteration"].fill(0)
                self._objects["hStep"].fill(0)
                self._objects["QA/centrality_after"].fill(centrality)
                return

            for k in range(1, s + 1):
                self._fill_stage_qa(k, grid.stage(i, k), centrality, vx, vy, vz)

            for k in range(0, min(s, N_STEPS - 1) + 1):
                if k == 0 and i > 1:
                    continue
                self._fill_step_input(k, grid.stage(i, k), centrality, vx, vy, vz)

            if s == N_STEPS:
                stage = grid.stage(i, N_STEPS)
                for c, name in enumerate(recentering_table_names(0)):
                    self._objects[f"step{N_STEPS}/{name}"].fill(centrality, vx, vy, vz, stage[c])

            self._objects["hIteration"].fill(i)
            self._objects["hStep"].fill(s)
            self._objects["QA/centrality_after"].fill(centrality)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_collection(self, prefix: str) -> Dict[str, object]:
        """Calibration tables directly under ``prefix``, keyed by base name.

        Example
        -------
        >>> source.add("ZDC/recentering/it1_step2", registry.export_collection("step2/"))
        """
        with self._lock:
            return {
                name[len(prefix):]: obj
                for name, obj in self._objects.items()
                if name.startswith(prefix) and "/" not in name[len(prefix):]
                and obj.kind in TABLE_KINDS
            }

    def to_dataset(self) -> xr.Dataset:
        with self._lock:
            return collection_to_dataset(self._objects)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the whole registry to netCDF4."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        ds = self.to_dataset()
        ds.to_netcdf(path, mode='w', engine='netcdf4', format='NETCDF4')
        logger.info("Statistics saved: %s (%d objects)", path, len(self._objects))
        return path
