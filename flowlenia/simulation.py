"""
FlowLeniaSimulation - The simulation context and its per-step phases.

Owns the mass field, environment, creature tracker, morphology blender,
pending offspring and the frame counter. One ``step()`` runs:

1. environment update (sensory mode)
2. detection + matching, pending offspring reconciliation
3. evolution (energy, predation, deaths, reproduction, balance, stats)
4. sensing -> target headings
5. potential, morphology, affinity, gradient (+ steering and pursuit)
6. transport + diffusion, then the conservation check

Everything after the affinity map only moves mass; a step whose total
drifts by more than the tolerance is reported (and raises in strict mode).
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
import numpy as np

from .core.config import FieldParams, TrackingParams, EvolutionParams, EnvironmentParams
from .core.constants import (
    DEFAULT_GRID_SIZE, MASS_DRIFT_TOLERANCE, OFFSPRING_CAPTURE_RADIUS,
    OFFSPRING_PENDING_FRAMES, SPLIT_DISTANCE_SCALE, OFFSPRING_RADIUS_SCALE,
    OFFSPRING_MIN_RADIUS
)
from .core.errors import MassConservationError
from .core.mass_field import MassField
from .core.morphology import MorphologyBlender
from .core.utils import disc_footprint, wrapped_indices, toroidal_distance
from .creature.creature import Creature
from .creature.species import SpeciesPreset, get_species
from .events.console_log import console_log
from .events.logger import event_log
from .manager.tracker import CreatureTracker, OffspringData
from .world.environment import Environment


@dataclass
class PendingOffspring:
    """Two freshly split blobs waiting to be detected."""
    data: OffspringData
    positions: List[Tuple[float, float]]
    frame: int
    assigned: List[bool] = field(default_factory=lambda: [False, False])


@dataclass
class StepReport:
    """Outcome of one ``step()``."""
    frame: int
    mass_before: float
    mass_after: float
    drift: float
    conserved: bool
    creatures: int = 0
    births: int = 0
    deaths: int = 0
    eaten: int = 0

    @property
    def total_mass(self) -> float:
        return self.mass_after


class FlowLeniaSimulation:
    """
    Flow-Lenia world: field solver plus the creature engine.

    Sensory mode turns on the environment, tracking and steering; evolution
    (``tracker.evolution.enabled``) adds the energy economy, reproduction,
    predation and morphology blending on top of it.
    """

    def __init__(self, size: int = DEFAULT_GRID_SIZE,
                 field_params: Optional[FieldParams] = None,
                 tracking: Optional[TrackingParams] = None,
                 evolution: Optional[EvolutionParams] = None,
                 environment: Optional[EnvironmentParams] = None,
                 sensory: bool = False,
                 strict_conservation: bool = False):
        self.field = MassField(size, field_params)
        self.size = self.field.size
        self.environment = Environment(self.size, environment)
        self.tracker = CreatureTracker(self.size, tracking, evolution)
        self.tracker.environment = self.environment
        self.morphology = MorphologyBlender(self.size)

        self.sensory_mode = sensory
        self.strict_conservation = strict_conservation
        self.drift_tolerance = MASS_DRIFT_TOLERANCE
        self.frame = 0
        self.pending_offspring: List[PendingOffspring] = []
        self.species: Optional[SpeciesPreset] = None

    # Convenience views
    @property
    def A(self) -> np.ndarray:
        return self.field.A

    @property
    def params(self) -> FieldParams:
        return self.field.params

    @property
    def creatures(self) -> List[Creature]:
        return self.tracker.creatures

    @property
    def evolution_enabled(self) -> bool:
        return self.tracker.evolution.enabled

    def set_sensory_mode(self, enabled: bool):
        self.sensory_mode = enabled

    def set_evolution(self, enabled: bool):
        self.tracker.evolution.enabled = enabled

    # =========================================================================
    # STEP
    # =========================================================================

    def step(self) -> StepReport:
        """Advance the world by one frame."""
        self.frame += 1
        tracker = self.tracker
        births = deaths = eaten = 0

        if self.sensory_mode:
            self.environment.update(self.field.A)

            tracker.update(self.field.A, self.frame)
            if self.pending_offspring:
                births = self.match_pending_offspring()

            if self.evolution_enabled:
                deaths, eaten = self._evolve()

            tracker.update_headings(self.environment)

        flows = []
        influence = None
        if self.sensory_mode:
            if self.evolution_enabled and tracker.creatures:
                influence = self.morphology.compute(self.field.A, tracker.creatures)
            flows.append(tracker.steering_field(self.field.A, self.field.params.steering_strength))
            pursuit = tracker.pursuit_field(self.field.A)
            if pursuit is not None:
                flows.append(pursuit)

        before, after = self.field.advance(influence, flows)
        report = self._check_conservation(before, after)
        report.creatures = tracker.count
        report.births = births
        report.deaths = deaths
        report.eaten = eaten
        return report

    def _evolve(self) -> Tuple[int, int]:
        """Energy, predation, deaths, reproduction, balance and stats."""
        tracker = self.tracker
        tracker.update_energy(self.environment)
        eaten = tracker.process_predation(self.field.A)

        reproduce, die = tracker.check_evolution_events()
        for creature in die:
            tracker.process_death(creature, self.environment)
        tracker.remove_dead()

        for parent in reproduce:
            self.process_reproduction(parent)

        tracker.balance_population(self.field)
        tracker.update_stats()
        return len(die), len(eaten)

    def _check_conservation(self, before: float, after: float) -> StepReport:
        drift = abs(after - before) / before if before > 0 else 0.0
        conserved = drift <= self.drift_tolerance
        report = StepReport(self.frame, before, after, drift, conserved)
        if not conserved:
            event_log().log_mass_drift(self.frame, before, after, drift)
            console_log().log(
                f"[MassDrift] Step {self.frame}: {before:.4f} -> {after:.4f} "
                f"({drift:.2%})", self.frame)
            if self.strict_conservation:
                raise MassConservationError(before, after, drift, self.frame)
        return report

    # =========================================================================
    # REPRODUCTION
    # =========================================================================

    def process_reproduction(self, parent: Creature) -> Optional[PendingOffspring]:
        """
        Split the parent's mass into two blobs perpendicular to its heading.

        The parent's cells are emptied, then each blob region is cleared and
        set to min(1, weight * scale) with weight = 1 - d^2 and scale chosen
        so each blob receives its share of the parent's mass.
        """
        data = self.tracker.process_reproduction(parent, self.frame)
        n = self.size
        A = self.field.A

        split_angle = parent.heading + np.pi / 2
        split_dist = parent.radius * SPLIT_DISTANCE_SCALE
        ox = np.cos(split_angle) * split_dist
        oy = np.sin(split_angle) * split_dist
        positions = [((parent.x + ox) % n, (parent.y + oy) % n),
                     ((parent.x - ox) % n, (parent.y - oy) % n)]

        total = self.field.erase_cells(parent.cells)
        ratio = 0.45 + np.random.random() * 0.1
        shares = (total * ratio, total * (1 - ratio))

        radius = max(parent.radius * OFFSPRING_RADIUS_SCALE, OFFSPRING_MIN_RADIUS)
        dx, dy, dist = disc_footprint(radius)
        weight = 1 - dist * dist
        blobs = [wrapped_indices(np.floor(x), np.floor(y), dx, dy, n) for x, y in positions]

        for iy, ix in blobs:
            A[iy, ix] = 0.0
        weight_total = float(np.sum(weight))
        if weight_total > 0:
            for (iy, ix), share in zip(blobs, shares):
                A[iy, ix] = np.minimum(1.0, weight * (share / weight_total))

        pending = PendingOffspring(data, positions, self.frame)
        self.pending_offspring.append(pending)
        return pending

    def match_pending_offspring(self) -> int:
        """
        Hand inherited genomes to newly detected creatures near split points.

        Returns:
            Number of offspring reconciled this frame
        """
        tracker = self.tracker
        matched = 0
        self.pending_offspring = [p for p in self.pending_offspring
                                  if self.frame - p.frame < OFFSPRING_PENDING_FRAMES]
        for pending in self.pending_offspring:
            for i, (px, py) in enumerate(pending.positions):
                if pending.assigned[i]:
                    continue

                best = None
                best_dist = OFFSPRING_CAPTURE_RADIUS
                for c in tracker.creatures:
                    if c.parent_id is not None or c.birth_frame < pending.frame:
                        continue
                    dist = toroidal_distance(c.x, c.y, px, py, self.size)
                    if dist < best_dist:
                        best_dist = dist
                        best = c
                if best is None:
                    continue

                info = pending.data.offspring[i]
                best.genome = info.genome
                best.energy = info.energy
                best.generation = info.generation
                best.parent_id = pending.data.parent_id
                best.birth_frame = pending.frame
                best.heading = info.heading
                best.target_heading = info.heading
                best.memory = info.memory
                best.memory.decay_rate = info.genome.memory_decay
                pending.assigned[i] = True
                matched += 1

                tracker.stats.record_lineage(pending.data.parent_id, best.id)
                event_log().log_birth(self.frame, best.id, pending.data.parent_id,
                                      best.generation, (best.x, best.y))
                console_log().log(
                    f"[Birth] Creature {best.id} (gen {best.generation}) "
                    f"from parent {pending.data.parent_id}", self.frame)

        self.pending_offspring = [p for p in self.pending_offspring if not all(p.assigned)]
        return matched

    # =========================================================================
    # SETUP & EDITING
    # =========================================================================

    def load_species(self, name: str) -> SpeciesPreset:
        """
        Reset the world to a species preset.

        Applies the preset's field parameters and kernel, environment
        overrides and base genome, then places its pattern at the centre.
        Sensory presets also switch on sensory mode and evolution.
        """
        preset = get_species(name)
        self.species = preset
        self.field.update_params(**preset.field_params())

        self.environment.params.update(**preset.environment)
        self.tracker.base_genome = preset.base_genome()
        self.tracker.ecosystem_mode = False
        self.sensory_mode = preset.sensory
        self.tracker.evolution.enabled = preset.sensory

        self.clear()
        if preset.pattern is not None:
            self.field.place_pattern(preset.pattern())
        console_log().log(f"[Species] Loaded {preset.name}: {preset.description}", self.frame)
        return preset

    def spawn_ecosystem(self, hunters: int = 2, prey: int = 6):
        """Clear the world and seed a hunter/prey ecosystem."""
        self.clear()
        self.sensory_mode = True
        self.tracker.evolution.enabled = True
        self.tracker.spawn_ecosystem(self.field, hunters, prey)

    def draw_blob(self, x: float, y: float, radius: float, value: float = 1.0):
        self.field.draw_blob(x, y, radius, value)

    def randomize(self, density: float = 0.3, clumpiness: float = 0.5):
        self.field.randomize(density, clumpiness)

    def clear(self):
        """Empty the field and roster; reset the environment and counters."""
        self.field.clear()
        self.tracker.clear()
        self.environment.reset()
        self.pending_offspring = []
        self.frame = 0

    def resize(self, size: int):
        """Resample the field to a new size and rebuild everything sized to it."""
        self.field.resize(size)
        self.size = self.field.size
        self.environment.resize(self.size)
        self.tracker.resize(self.size)
        self.morphology.resize(self.size)
        self.pending_offspring = []

    def total_mass(self) -> float:
        return self.field.total_mass()

    def snapshot(self) -> dict:
        """Read-only copy of the state a renderer or logger needs."""
        return {
            'frame': self.frame,
            'size': self.size,
            'A': self.field.A.copy(),
            'total_mass': self.field.total_mass(),
            'creatures': [c.summary() for c in self.tracker.creatures],
            'stats': self.tracker.stats.to_dict(),
            'params': self.field.params.to_dict(),
            'ecosystem': self.tracker.ecosystem_mode,
        }


def run_batch(sim: FlowLeniaSimulation, steps: int,
              should_stop: Optional[Callable[[], bool]] = None,
              on_step: Optional[Callable[[StepReport], None]] = None) -> List[StepReport]:
    """
    Run up to ``steps`` frames, checking ``should_stop`` between frames.

    Returns:
        The reports of the frames that ran
    """
    reports = []
    for _ in range(steps):
        if should_stop is not None and should_stop():
            console_log().log(f"[Batch] Stopped at step {sim.frame}", sim.frame)
            break
        report = sim.step()
        reports.append(report)
        if on_step is not None:
            on_step(report)
    return reports
