"""
CreatureTracker - Identity, behaviour and life cycle of detected creatures.

Each step the tracker:
- detects components of the mass field and matches them to the roster
- gives new creatures a genome (ecosystem guilds, species base genome or default)
- smooths headings toward their sensed targets
- runs the energy economy, predation, reproduction and death bookkeeping
- supplies steering and pursuit vector fields to the mass field

Matching is greedy: candidates are visited heaviest first and each claims the
closest unclaimed creature within match_distance, so results depend on that
order when two creatures compete for one candidate.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np

from ..core.config import TrackingParams, EvolutionParams
from ..core.constants import (
    FLOW_MASS_THRESHOLD, FOOD_BITE_FRACTION, FOOD_MEMORY_FACTOR, DEATH_FOOD_FRACTION,
    OFFSPRING_MEMORY_INHERITANCE, SIGNAL_GLOW_SECONDS,
    PURSUIT_STRENGTH, PURSUIT_RANGE, PURSUIT_MAX_LOOKAHEAD, PURSUIT_PROXIMITY_GAIN,
    HUNTER_BLOB_RADIUS, HUNTER_BLOB_VALUE, PREY_BLOB_RADIUS, PREY_BLOB_VALUE,
    HUNTER_SPAWN_SEPARATION, PREY_SPAWN_SEPARATION, HEADING_SPEED_FLOOR
)
from ..core.utils import wrap_angle, angle_difference, toroidal_delta, toroidal_distance
from ..creature.creature import Creature, CellSet
from ..creature.genome import Genome
from ..creature.memory import CreatureMemory
from ..creature.species import SPECIES_HUNTER, SPECIES_PREY
from ..events.console_log import console_log
from ..events.logger import event_log
from ..statistics import EvolutionStats
from .detector import CreatureDetector, Candidate
from .sensing import compute_sensory_input, target_heading

SPAWN_ATTEMPTS = 50


@dataclass
class Offspring:
    """What one child inherits; applied when its blob is detected."""
    genome: Genome
    energy: float
    generation: int
    heading: float
    memory: CreatureMemory


@dataclass
class OffspringData:
    parent_id: int
    parent_x: float
    parent_y: float
    parent_mass: float
    offspring: List[Offspring] = field(default_factory=list)


class CreatureTracker:
    """Owns the creature roster and everything that happens to it."""

    def __init__(self, size: int, params: Optional[TrackingParams] = None,
                 evolution: Optional[EvolutionParams] = None):
        self.size = size
        self.params = params if params is not None else TrackingParams()
        self.evolution = evolution if evolution is not None else EvolutionParams()
        self.detector = CreatureDetector(size, self.params)

        self.creatures: List[Creature] = []
        self.next_id = 1
        self.frame = 0
        self.stats = EvolutionStats()

        # Genome sources
        self.base_genome: Optional[Genome] = None
        self.ecosystem_mode = False
        self.hunter_genome: Optional[Genome] = None
        self.prey_genome: Optional[Genome] = None
        self.pending_hunters = 0
        self.pending_prey = 0

        # Signals
        self.environment = None
        self.recent_signals: Dict[int, Tuple[str, float, float]] = {}

    @property
    def labels(self) -> np.ndarray:
        """Creature id per cell for the current frame (0 = none)."""
        return self.detector.labels

    @property
    def count(self) -> int:
        return len(self.creatures)

    # =========================================================================
    # DETECTION & MATCHING
    # =========================================================================

    def update(self, A: np.ndarray, frame: int) -> List[Creature]:
        """
        Detect, match, assign genomes, smooth headings and drop stale creatures.

        Returns:
            Creatures created this frame
        """
        self.frame = frame
        candidates = self.detector.detect(A)
        created = self.match(candidates, frame)
        self.assign_genomes(created)
        self.integrate_headings()

        stale = [c for c in self.creatures if frame - c.last_seen >= self.params.stale_frames]
        for c in stale:
            console_log().log(f"[Track] Creature {c.id} lost after {c.age} frames", frame)
        if stale:
            self.creatures = [c for c in self.creatures
                              if frame - c.last_seen < self.params.stale_frames]
            self.forget_signals(c.id for c in stale)
        return created

    def match(self, candidates: List[Candidate], frame: int) -> List[Creature]:
        """
        Greedy frame-to-frame matching.

        Each candidate claims at most one creature and each creature is
        claimed at most once. Unclaimed creatures keep their last state with
        an empty cell set.
        """
        p = self.params
        claimed = set()
        created = []
        label_ids = np.zeros(len(candidates) + 1, dtype=np.int32)

        for cand in candidates:
            best = None
            best_dist = p.match_distance
            for existing in self.creatures:
                if existing.id in claimed:
                    continue
                dist = toroidal_distance(cand.x, cand.y, existing.x, existing.y, self.size)
                if dist < best_dist:
                    best_dist = dist
                    best = existing

            if best is not None:
                claimed.add(best.id)
                dx = toroidal_delta(cand.x, best.x, self.size)
                dy = toroidal_delta(cand.y, best.y, self.size)
                best.x, best.y = cand.x, cand.y
                best.mass = cand.mass
                best.cells = cand.cells
                best.age += 1
                best.last_seen = frame

                k = p.velocity_smoothing
                best.vx = best.vx * (1 - k) + dx * k
                best.vy = best.vy * (1 - k) + dy * k
                if best.speed > HEADING_SPEED_FLOOR:
                    best.heading = float(np.arctan2(best.vy, best.vx))
                best.memory.decay_rate = best.genome.memory_decay
                if cand.label:
                    label_ids[cand.label] = best.id
            else:
                heading = float(wrap_angle(np.random.random() * 2 * np.pi))
                creature = Creature(
                    id=self.next_id,
                    x=cand.x, y=cand.y, mass=cand.mass, cells=cand.cells,
                    heading=heading, target_heading=heading,
                    last_seen=frame, birth_frame=frame,
                    home_x=cand.x, home_y=cand.y,
                )
                self.next_id += 1
                created.append(creature)
                if cand.label:
                    label_ids[cand.label] = creature.id

        for c in self.creatures:
            if c.id not in claimed:
                c.cells = CellSet.empty()
        # New creatures join after the loop so later candidates cannot claim them
        self.creatures.extend(created)

        # Relabel the grid with creature ids
        self.detector.labels[...] = label_ids[self.detector.labels]
        return created

    def assign_genomes(self, created: List[Creature]):
        """Give newly detected creatures a genome and starting energy."""
        if not created:
            return
        min_energy = self.evolution.min_creature_energy

        if self.ecosystem_mode:
            new_ids = {c.id for c in created}
            hunters = sum(1 for c in self.creatures if c.is_predator and c.id not in new_ids)
            hunters_needed = self.pending_hunters - hunters
            self.pending_hunters = 0
            self.pending_prey = 0

            for c in sorted(created, key=lambda c: c.mass, reverse=True):
                if hunters_needed > 0 and self.hunter_genome is not None:
                    c.genome = self.hunter_genome.clone()
                    c.energy = min_energy + c.mass * 1.0
                    hunters_needed -= 1
                else:
                    c.genome = (self.prey_genome or Genome()).clone()
                    c.energy = min_energy + c.mass * 0.5
                c.memory.decay_rate = c.genome.memory_decay
            return

        for c in created:
            c.genome = self.base_genome.clone() if self.base_genome is not None else Genome()
            c.energy = min_energy + c.mass * 0.5
            c.memory.decay_rate = c.genome.memory_decay

    def integrate_headings(self):
        """heading += wrap(target - heading) * heading_smoothing, then wrap."""
        k = self.params.heading_smoothing
        for c in self.creatures:
            c.heading = float(wrap_angle(c.heading + angle_difference(c.target_heading, c.heading) * k))

    # =========================================================================
    # SENSING & STEERING
    # =========================================================================

    def compute_sensory_input(self, creature: Creature, environment=None) -> Tuple[float, float]:
        return compute_sensory_input(creature, self.creatures, environment, self.size,
                                     self.params.social_distance)

    def update_headings(self, environment=None):
        """Set every creature's target heading from its sensory input."""
        for c in self.creatures:
            sense = self.compute_sensory_input(c, environment)
            c.target_heading = target_heading(sense, c.heading)

    def steering_field(self, A: np.ndarray, strength: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Per-cell push along each creature's heading.

        Vector = (cos, sin)(heading) * turn_rate * cell value * strength, only
        where A >= 0.1.
        """
        fx = np.zeros_like(A)
        fy = np.zeros_like(A)
        if strength == 0:
            return fx, fy
        for c in self.creatures:
            if len(c.cells) == 0:
                continue
            steer = c.genome.turn_rate * c.cells.values * strength
            fx[c.cells.ys, c.cells.xs] += np.cos(c.heading) * steer
            fy[c.cells.ys, c.cells.xs] += np.sin(c.heading) * steer
        mask = A >= FLOW_MASS_THRESHOLD
        return fx * mask, fy * mask

    def pursuit_field(self, A: np.ndarray) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Extra flow pulling each hunter toward where its nearest prey is heading."""
        if not self.ecosystem_mode:
            return None
        hunters = [c for c in self.creatures if c.is_predator]
        prey = [c for c in self.creatures if not c.is_predator]
        if not hunters or not prey:
            return None

        fx = np.zeros_like(A)
        fy = np.zeros_like(A)
        for hunter in hunters:
            dists = [self.toroidal_distance(hunter.x, hunter.y, p.x, p.y) for p in prey]
            i = int(np.argmin(dists))
            nearest, near_dist = prey[i], dists[i]
            if near_dist > PURSUIT_RANGE:
                continue

            lookahead = min(PURSUIT_MAX_LOOKAHEAD, near_dist / 2)
            tx = (nearest.x + nearest.vx * lookahead) % self.size
            ty = (nearest.y + nearest.vy * lookahead) % self.size
            dx = toroidal_delta(tx, hunter.x, self.size)
            dy = toroidal_delta(ty, hunter.y, self.size)
            dist = float(np.hypot(dx, dy))
            if dist < 0.1 or len(hunter.cells) == 0:
                continue

            boost = 1 + (1 - near_dist / PURSUIT_RANGE) ** 2 * PURSUIT_PROXIMITY_GAIN
            cells = hunter.cells
            live = A[cells.ys, cells.xs] > FLOW_MASS_THRESHOLD
            push = PURSUIT_STRENGTH * boost * cells.values * live
            fx[cells.ys, cells.xs] += dx / dist * push
            fy[cells.ys, cells.xs] += dy / dist * push
        return fx, fy

    # =========================================================================
    # QUERIES
    # =========================================================================

    def toroidal_distance(self, x1: float, y1: float, x2: float, y2: float) -> float:
        return toroidal_distance(x1, y1, x2, y2, self.size)

    def toroidal_delta(self, to: float, frm: float) -> float:
        return toroidal_delta(to, frm, self.size)

    def get_creature_at(self, x: float, y: float) -> Optional[Creature]:
        """First creature whose centre lies within twice its radius of (x, y)."""
        for c in self.creatures:
            if self.toroidal_distance(x, y, c.x, c.y) < c.radius * 2:
                return c
        return None

    def get_creature_by_id(self, creature_id: Optional[int]) -> Optional[Creature]:
        for c in self.creatures:
            if c.id == creature_id:
                return c
        return None

    def get_largest_creature(self) -> Optional[Creature]:
        if not self.creatures:
            return None
        return max(self.creatures, key=lambda c: c.mass)

    # =========================================================================
    # ENERGY ECONOMY
    # =========================================================================

    def update_energy(self, environment=None):
        """Metabolism for everyone, food intake for creatures with cells."""
        evo = self.evolution
        for c in self.creatures:
            c.energy -= c.genome.metabolism_rate + c.mass * evo.size_metabolism_factor

            if environment is not None and len(c.cells) > 0:
                ys, xs = c.cells.ys, c.cells.xs
                food = environment.food[ys, xs]
                consumed = np.minimum(food, c.cells.values * FOOD_BITE_FRACTION)
                environment.food[ys, xs] = np.maximum(0.0, food - consumed)
                total = float(np.sum(consumed))
                c.energy += total * evo.food_energy_gain
                if total > 0:
                    c.memory.record_food(c.x, c.y, self.size, total * FOOD_MEMORY_FACTOR)

            c.energy = max(0.0, c.energy)

    def check_evolution_events(self) -> Tuple[List[Creature], List[Creature]]:
        """
        Decide who reproduces and who dies; emit mating and territory signals.

        Returns:
            (reproduce, die)
        """
        reproduce, die = [], []
        for c in self.creatures:
            if c.energy <= 0:
                die.append(c)
                continue

            if (c.can_reproduce and c.last_seen == self.frame
                    and len(self.creatures) < self.evolution.max_population):
                reproduce.append(c)

            g = c.genome
            threshold = g.reproduction_threshold
            if threshold * 0.8 < c.energy < threshold:
                readiness = (c.energy - threshold * 0.8) / (threshold * 0.2)
                self.emit_signal('mating', c.x, c.y, 0.5 * readiness, c)

            if g.territory_radius > 0:
                home_dist = float(np.hypot(self.toroidal_delta(c.home_x, c.x),
                                           self.toroidal_delta(c.home_y, c.y)))
                if home_dist < g.territory_radius * 0.8:
                    self.emit_signal('territory', c.x, c.y, g.signal_emission_rate * 0.3, c)
        return reproduce, die

    def process_reproduction(self, parent: Creature, frame: int) -> OffspringData:
        """
        Pay the reproduction cost and prepare two mutated offspring.

        Each child gets E * cost / 2, the parent keeps E * (1 - cost).
        """
        cost = parent.genome.reproduction_cost
        child_energy = parent.energy * cost / 2
        parent.energy *= (1 - cost)

        generation = parent.generation + 1
        self.stats.record_birth(generation, 2)

        data = OffspringData(parent.id, parent.x, parent.y, parent.mass)
        for turn in (np.pi / 4, -np.pi / 4):
            data.offspring.append(Offspring(
                genome=parent.genome.mutate(self.evolution.mutation_rate),
                energy=child_energy,
                generation=generation,
                heading=float(wrap_angle(parent.heading + turn)),
                memory=parent.memory.clone(OFFSPRING_MEMORY_INHERITANCE),
            ))

        event_log().log_reproduction(frame, parent.id, parent.energy, child_energy, generation)
        console_log().log(f"[Reproduce] Creature {parent.id} split (gen {generation})", frame)
        return data

    def process_death(self, creature: Creature, environment=None, cause: str = 'starvation'):
        """Count the death and optionally return part of the body as food."""
        self.stats.total_deaths += 1
        if self.evolution.death_becomes_food and environment is not None:
            environment.add_food(creature.x, creature.y,
                                 creature.mass * DEATH_FOOD_FRACTION, creature.radius)
        event_log().log_death(self.frame, creature.id, cause, creature.generation,
                              creature.age, (creature.x, creature.y))
        console_log().log(f"[Death] Creature {creature.id} ({cause}, age {creature.age})",
                          self.frame)

    def remove_dead(self):
        self.forget_signals(c.id for c in self.creatures if c.energy <= 0)
        self.creatures = [c for c in self.creatures if c.energy > 0]

    # =========================================================================
    # PREDATION
    # =========================================================================

    def process_predation(self, A: np.ndarray) -> List[Creature]:
        """
        Hunters eat prey within catch radius; prey near hunters remember danger
        and raise the alarm.

        Eaten prey are zeroed in A and removed from the roster immediately.

        Returns:
            Creatures eaten this pass
        """
        if not self.ecosystem_mode:
            return []

        hunters = [c for c in self.creatures if c.is_predator]
        prey = [c for c in self.creatures if not c.is_predator]
        eaten: Dict[int, Creature] = {}
        alarmed = set()

        for hunter in hunters:
            for p in prey:
                if p.id in eaten:
                    continue
                dist = self.toroidal_distance(hunter.x, hunter.y, p.x, p.y)
                catch = hunter.radius + p.radius

                danger = catch * 2
                if dist < danger:
                    p.memory.record_danger(hunter.x, hunter.y, self.size,
                                           0.3 * (1 - dist / danger))

                alarm = catch * 1.5
                if dist < alarm and p.id not in alarmed:
                    self.emit_signal('alarm', p.x, p.y, 0.8 * (1 - dist / alarm), p)
                    alarmed.add(p.id)

                if dist < catch:
                    hunter.energy += p.mass * self.evolution.predation_energy
                    eaten[p.id] = p
                    self.stats.predation_events += 1
                    self.emit_signal('hunting', hunter.x, hunter.y, 1.0, hunter)
                    if len(p.cells) > 0:
                        A[p.cells.ys, p.cells.xs] = 0.0
                    event_log().log_predation(self.frame, hunter.id, p.id, p.mass)
                    console_log().log(
                        f"[Predation] Hunter {hunter.id} caught prey {p.id} "
                        f"(mass {p.mass:.1f})", self.frame)

        if eaten:
            self.creatures = [c for c in self.creatures if c.id not in eaten]
            self.forget_signals(eaten)
            self.stats.total_deaths += len(eaten)
        return list(eaten.values())

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def emit_signal(self, kind: str, x: float, y: float, intensity: float,
                    creature: Optional[Creature] = None):
        """Forward a signal to the environment, scaled by the emitter's rate."""
        if self.environment is None:
            return
        if creature is not None:
            intensity *= creature.genome.signal_emission_rate
        self.environment.emit_signal(kind, x, y, intensity)
        now = time.monotonic()
        self.recent_signals = {cid: entry for cid, entry in self.recent_signals.items()
                               if now - entry[2] <= SIGNAL_GLOW_SECONDS}
        if creature is not None:
            self.recent_signals[creature.id] = (kind, intensity, now)
            console_log().log(f"[Signal] {kind} from {creature.id} ({intensity:.2f})",
                              self.frame)

    def get_recent_signal(self, creature: Creature) -> Optional[Tuple[str, float]]:
        """(kind, fading intensity) of the creature's last emission, if still glowing."""
        entry = self.recent_signals.get(creature.id)
        if entry is None:
            return None
        kind, intensity, emitted = entry
        elapsed = time.monotonic() - emitted
        if elapsed > SIGNAL_GLOW_SECONDS:
            del self.recent_signals[creature.id]
            return None
        return kind, intensity * (1 - elapsed / SIGNAL_GLOW_SECONDS)

    def forget_signals(self, ids):
        for cid in ids:
            self.recent_signals.pop(cid, None)

    # =========================================================================
    # ECOSYSTEM MODE
    # =========================================================================

    def spawn_ecosystem(self, field, hunters: int = 2, prey: int = 6):
        """
        Draw hunter and prey blobs on ``field`` and switch to ecosystem mode.

        The largest creatures detected next get the hunter genome.
        """
        self.hunter_genome = SPECIES_HUNTER.base_genome()
        self.prey_genome = SPECIES_PREY.base_genome()
        self.creatures = []
        self.ecosystem_mode = True

        positions: List[Tuple[float, float]] = []

        def spawn_position(min_dist: float) -> Tuple[float, float]:
            for _ in range(SPAWN_ATTEMPTS):
                x = np.random.random() * self.size
                y = np.random.random() * self.size
                if all(self.toroidal_distance(x, y, px, py) >= min_dist for px, py in positions):
                    break
            positions.append((x, y))
            return x, y

        for _ in range(hunters):
            x, y = spawn_position(HUNTER_SPAWN_SEPARATION)
            field.draw_blob(x, y, HUNTER_BLOB_RADIUS, HUNTER_BLOB_VALUE)
        for _ in range(prey):
            x, y = spawn_position(PREY_SPAWN_SEPARATION)
            field.draw_blob(x, y, PREY_BLOB_RADIUS, PREY_BLOB_VALUE)

        self.pending_hunters = hunters
        self.pending_prey = prey
        console_log().log(f"[Ecosystem] Spawned {hunters} hunters and {prey} prey", self.frame)

    def balance_population(self, field):
        """Respawn a guild that died out while the other survives."""
        if not self.ecosystem_mode or not self.evolution.enabled:
            return
        hunters = sum(1 for c in self.creatures if c.is_predator)
        prey = len(self.creatures) - hunters

        if prey == 0 and hunters > 0:
            for _ in range(2):
                field.draw_blob(np.random.random() * self.size, np.random.random() * self.size,
                                PREY_BLOB_RADIUS, PREY_BLOB_VALUE)
            console_log().log("[Extinction] Prey died out, respawning 2", self.frame)

        if hunters == 0 and prey > 0:
            field.draw_blob(np.random.random() * self.size, np.random.random() * self.size,
                            HUNTER_BLOB_RADIUS, HUNTER_BLOB_VALUE)
            self.pending_hunters = 1
            console_log().log("[Extinction] Hunters died out, respawning 1", self.frame)

    # =========================================================================
    # STATISTICS & LIFECYCLE
    # =========================================================================

    def update_stats(self):
        self.stats.update(self.creatures)

    def clear(self):
        self.creatures = []
        self.detector.labels.fill(0)
        self.recent_signals.clear()
        self.pending_hunters = 0
        self.pending_prey = 0
        self.stats = EvolutionStats()

    def resize(self, size: int):
        self.size = size
        self.detector.resize(size)
        self.creatures = []
