"""Static exercise catalog with movement, role and environment tags.

Each entry specifies:
- Primary muscle (Portuguese vocabulary used across the product)
- Movement pattern, used to apply joint restrictions
- Role: structural (multi-joint) or isolated (single-joint)
- Environment where it can be performed, plus the equipment it needs

Environment is a property of the entry. Display names are never parsed to
decide where an exercise can be done.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class MovementPattern(str, Enum):
    HORIZONTAL_PUSH = "horizontal_push"
    VERTICAL_PUSH = "vertical_push"
    HORIZONTAL_PULL = "horizontal_pull"
    VERTICAL_PULL = "vertical_pull"
    HIP_DOMINANT = "hip_dominant"
    KNEE_DOMINANT = "knee_dominant"
    OTHER = "other"


class ExerciseRole(str, Enum):
    STRUCTURAL = "structural"
    ISOLATED = "isolated"


class Environment(str, Enum):
    HOME = "home"
    GYM = "gym"
    BOTH = "both"
    OUTDOOR = "outdoor"


class Equipment(str, Enum):
    MACHINE = "machine"
    CABLE = "cable"
    BARBELL = "barbell"
    DUMBBELL = "dumbbell"
    BAND = "band"
    BODYWEIGHT = "bodyweight"
    BAR = "bar"


# -- Muscle vocabulary --

PEITORAL = "peitoral"
COSTAS = "costas"
OMBROS = "ombros"
TRAPEZIO = "trapezio"
BICEPS = "biceps"
TRICEPS = "triceps"
QUADRICEPS = "quadriceps"
POSTERIOR = "posterior de coxa"
GLUTEOS = "gluteos"
PANTURRILHAS = "panturrilhas"

CORE = "core"

MUSCLES: tuple[str, ...] = (
    PEITORAL, COSTAS, OMBROS, TRAPEZIO, BICEPS,
    TRICEPS, QUADRICEPS, POSTERIOR, GLUTEOS, PANTURRILHAS,
)

LARGE_MUSCLES = frozenset({PEITORAL, COSTAS, QUADRICEPS, POSTERIOR, GLUTEOS})
MEDIUM_MUSCLES = frozenset({OMBROS, TRAPEZIO})
SMALL_MUSCLES = frozenset({BICEPS, TRICEPS, PANTURRILHAS})

_MUSCLE_ALIASES: dict[str, str] = {
    "peitoral": PEITORAL,
    "peito": PEITORAL,
    "peitorais": PEITORAL,
    "chest": PEITORAL,
    "costas": COSTAS,
    "dorsal": COSTAS,
    "dorsais": COSTAS,
    "back": COSTAS,
    "ombros": OMBROS,
    "ombro": OMBROS,
    "deltoide": OMBROS,
    "deltoides": OMBROS,
    "shoulders": OMBROS,
    "trapezio": TRAPEZIO,
    "biceps": BICEPS,
    "triceps": TRICEPS,
    "quadriceps": QUADRICEPS,
    "quads": QUADRICEPS,
    "posterior de coxa": POSTERIOR,
    "posterior": POSTERIOR,
    "posteriores de coxa": POSTERIOR,
    "isquiotibiais": POSTERIOR,
    "hamstrings": POSTERIOR,
    "gluteos": GLUTEOS,
    "gluteo": GLUTEOS,
    "glutes": GLUTEOS,
    "panturrilhas": PANTURRILHAS,
    "panturrilha": PANTURRILHAS,
    "calves": PANTURRILHAS,
    "core": CORE,
    "abdomen": CORE,
    "abdominal": CORE,
    "abdominais": CORE,
}


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return " ".join(
        "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").lower().split()
    )


def normalize_muscle(name: str | None) -> str:
    """Map a muscle label to the canonical vocabulary.

    Unknown labels come back folded (lowercase, no accents) so callers can
    still compare them, but they will not match any catalog muscle.
    """
    if not name:
        return ""
    folded = _fold(str(name))
    return _MUSCLE_ALIASES.get(folded, folded)


def muscle_size(muscle: str) -> str:
    m = normalize_muscle(muscle)
    if m in LARGE_MUSCLES:
        return "large"
    if m in MEDIUM_MUSCLES:
        return "medium"
    if m in SMALL_MUSCLES:
        return "small"
    return "unknown"


@dataclass(frozen=True)
class Exercise:
    name: str
    primary_muscle: str
    pattern: MovementPattern
    role: ExerciseRole
    environment: Environment
    equipment: Equipment
    secondary_muscles: tuple[str, ...] = ()

    @property
    def is_structural(self) -> bool:
        return self.role == ExerciseRole.STRUCTURAL


CATALOG: dict[str, Exercise] = {}


def _reg(
    name: str,
    muscle: str,
    pattern: MovementPattern,
    role: ExerciseRole,
    environment: Environment,
    equipment: Equipment,
    secondary: tuple[str, ...] = (),
) -> Exercise:
    ex = Exercise(name, muscle, pattern, role, environment, equipment, secondary)
    CATALOG[name] = ex
    return ex


_S, _I = ExerciseRole.STRUCTURAL, ExerciseRole.ISOLATED
_P = MovementPattern
_E = Environment
_Q = Equipment

# --- Peitoral ---

_reg("Supino reto com barra", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.GYM, _Q.BARBELL, (TRICEPS, OMBROS))
_reg("Supino inclinado com halteres", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.HOME, _Q.DUMBBELL, (OMBROS,))
_reg("Supino reto com halteres", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.HOME, _Q.DUMBBELL, (TRICEPS,))
_reg("Supino inclinado com barra", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.GYM, _Q.BARBELL, (OMBROS,))
_reg("Flexão de braços", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT, (TRICEPS,))
_reg("Flexão inclinada", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT)
_reg("Flexão com pés elevados", PEITORAL, _P.HORIZONTAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT, (OMBROS,))
_reg("Crucifixo com halteres", PEITORAL, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Crossover com cabos", PEITORAL, _P.OTHER, _I, _E.GYM, _Q.CABLE)
_reg("Peck deck", PEITORAL, _P.OTHER, _I, _E.GYM, _Q.MACHINE)

# --- Costas ---

_reg("Puxada na barra fixa", COSTAS, _P.VERTICAL_PULL, _S, _E.BOTH, _Q.BAR, (BICEPS,))
_reg("Remada curvada com barra", COSTAS, _P.HORIZONTAL_PULL, _S, _E.GYM, _Q.BARBELL, (BICEPS, TRAPEZIO))
_reg("Remada unilateral com halteres", COSTAS, _P.HORIZONTAL_PULL, _S, _E.HOME, _Q.DUMBBELL, (BICEPS,))
_reg("Puxada frontal na polia", COSTAS, _P.VERTICAL_PULL, _S, _E.GYM, _Q.CABLE, (BICEPS,))
_reg("Remada baixa na polia", COSTAS, _P.HORIZONTAL_PULL, _S, _E.GYM, _Q.CABLE, (BICEPS,))
_reg("Remada curvada com halteres", COSTAS, _P.HORIZONTAL_PULL, _S, _E.HOME, _Q.DUMBBELL)
_reg("Remada australiana", COSTAS, _P.HORIZONTAL_PULL, _S, _E.OUTDOOR, _Q.BAR, (BICEPS,))
_reg("Puxada alta com elástico", COSTAS, _P.VERTICAL_PULL, _S, _E.HOME, _Q.BAND)

# --- Ombros ---

_reg("Desenvolvimento militar com barra", OMBROS, _P.VERTICAL_PUSH, _S, _E.GYM, _Q.BARBELL, (TRICEPS,))
_reg("Desenvolvimento com halteres", OMBROS, _P.VERTICAL_PUSH, _S, _E.HOME, _Q.DUMBBELL, (TRICEPS,))
_reg("Flexão pike", OMBROS, _P.VERTICAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT, (TRICEPS,))
_reg("Elevação lateral com halteres", OMBROS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Elevação frontal com halteres", OMBROS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Crucifixo invertido com halteres", OMBROS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL, (TRAPEZIO,))
_reg("Elevação lateral com elástico", OMBROS, _P.OTHER, _I, _E.HOME, _Q.BAND)
_reg("Face pull na polia", OMBROS, _P.HORIZONTAL_PULL, _I, _E.GYM, _Q.CABLE, (TRAPEZIO,))
_reg("Elevação em Y no chão", OMBROS, _P.OTHER, _I, _E.BOTH, _Q.BODYWEIGHT)

# --- Trapézio ---

_reg("Encolhimento com barra", TRAPEZIO, _P.OTHER, _I, _E.GYM, _Q.BARBELL)
_reg("Encolhimento com halteres", TRAPEZIO, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Remada alta com barra", TRAPEZIO, _P.VERTICAL_PULL, _S, _E.GYM, _Q.BARBELL, (OMBROS,))
_reg("Encolhimento na barra fixa", TRAPEZIO, _P.OTHER, _I, _E.BOTH, _Q.BAR)

# --- Bíceps ---

_reg("Rosca direta com barra", BICEPS, _P.OTHER, _I, _E.GYM, _Q.BARBELL)
_reg("Rosca alternada com halteres", BICEPS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Rosca martelo", BICEPS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Rosca concentrada", BICEPS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Rosca com elástico", BICEPS, _P.OTHER, _I, _E.HOME, _Q.BAND)
_reg("Rosca na polia baixa", BICEPS, _P.OTHER, _I, _E.GYM, _Q.CABLE)
_reg("Chin-up pegada fechada", BICEPS, _P.VERTICAL_PULL, _S, _E.BOTH, _Q.BAR, (COSTAS,))
_reg("Rosca bíceps na barra australiana", BICEPS, _P.OTHER, _I, _E.OUTDOOR, _Q.BAR)

# --- Tríceps ---

_reg("Tríceps testa com barra EZ", TRICEPS, _P.OTHER, _I, _E.GYM, _Q.BARBELL)
_reg("Tríceps na polia alta", TRICEPS, _P.OTHER, _I, _E.GYM, _Q.CABLE)
_reg("Tríceps francês com halter", TRICEPS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Tríceps coice com halter", TRICEPS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Mergulho entre bancos", TRICEPS, _P.VERTICAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT, (PEITORAL,))
_reg("Flexão diamante", TRICEPS, _P.HORIZONTAL_PUSH, _S, _E.BOTH, _Q.BODYWEIGHT, (PEITORAL,))
_reg("Mergulho nas paralelas", TRICEPS, _P.VERTICAL_PUSH, _S, _E.OUTDOOR, _Q.BAR, (PEITORAL,))

# --- Quadríceps ---

_reg("Agachamento livre com barra", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.GYM, _Q.BARBELL, (GLUTEOS,))
_reg("Leg press 45°", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.GYM, _Q.MACHINE, (GLUTEOS,))
_reg("Agachamento frontal", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.GYM, _Q.BARBELL)
_reg("Hack squat", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.GYM, _Q.MACHINE)
_reg("Afundo com halteres", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.HOME, _Q.DUMBBELL, (GLUTEOS,))
_reg("Agachamento búlgaro", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.HOME, _Q.DUMBBELL, (GLUTEOS,))
_reg("Agachamento goblet", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.HOME, _Q.DUMBBELL)
_reg("Agachamento livre peso corporal", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.BOTH, _Q.BODYWEIGHT)
_reg("Afundo alternado", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.BOTH, _Q.BODYWEIGHT, (GLUTEOS,))
_reg("Subida em banco de praça", QUADRICEPS, _P.KNEE_DOMINANT, _S, _E.OUTDOOR, _Q.BODYWEIGHT, (GLUTEOS,))
_reg("Cadeira extensora", QUADRICEPS, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Extensão de joelho com caneleira", QUADRICEPS, _P.OTHER, _I, _E.HOME, _Q.BAND)

# --- Posterior de coxa ---

_reg("Stiff com barra", POSTERIOR, _P.HIP_DOMINANT, _S, _E.GYM, _Q.BARBELL, (GLUTEOS,))
_reg("Levantamento terra romeno com halteres", POSTERIOR, _P.HIP_DOMINANT, _S, _E.HOME, _Q.DUMBBELL, (GLUTEOS,))
_reg("Good morning com barra", POSTERIOR, _P.HIP_DOMINANT, _S, _E.GYM, _Q.BARBELL)
_reg("Stiff unilateral com halter", POSTERIOR, _P.HIP_DOMINANT, _S, _E.HOME, _Q.DUMBBELL, (GLUTEOS,))
_reg("Stiff unilateral peso corporal", POSTERIOR, _P.HIP_DOMINANT, _S, _E.BOTH, _Q.BODYWEIGHT)
_reg("Mesa flexora", POSTERIOR, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Cadeira flexora", POSTERIOR, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Flexão nórdica", POSTERIOR, _P.OTHER, _I, _E.BOTH, _Q.BODYWEIGHT)
_reg("Flexão de joelhos no deslizante", POSTERIOR, _P.OTHER, _I, _E.HOME, _Q.BODYWEIGHT)

# --- Glúteos ---

_reg("Elevação pélvica com barra", GLUTEOS, _P.HIP_DOMINANT, _S, _E.GYM, _Q.BARBELL, (POSTERIOR,))
_reg("Elevação pélvica com halter", GLUTEOS, _P.HIP_DOMINANT, _S, _E.HOME, _Q.DUMBBELL, (POSTERIOR,))
_reg("Ponte de glúteos", GLUTEOS, _P.HIP_DOMINANT, _S, _E.BOTH, _Q.BODYWEIGHT)
_reg("Glúteo na polia", GLUTEOS, _P.OTHER, _I, _E.GYM, _Q.CABLE)
_reg("Cadeira abdutora", GLUTEOS, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Coice de glúteo em quatro apoios", GLUTEOS, _P.OTHER, _I, _E.BOTH, _Q.BODYWEIGHT)
_reg("Abdução com elástico", GLUTEOS, _P.OTHER, _I, _E.HOME, _Q.BAND)

# --- Panturrilhas ---

_reg("Panturrilha em pé na máquina", PANTURRILHAS, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Panturrilha sentado na máquina", PANTURRILHAS, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Panturrilha no leg press", PANTURRILHAS, _P.OTHER, _I, _E.GYM, _Q.MACHINE)
_reg("Panturrilha unilateral com halter", PANTURRILHAS, _P.OTHER, _I, _E.HOME, _Q.DUMBBELL)
_reg("Panturrilha em degrau", PANTURRILHAS, _P.OTHER, _I, _E.BOTH, _Q.BODYWEIGHT)


# -- Location and restriction filters --

_LOCATION_ALIASES: dict[str, Environment] = {
    "casa": Environment.HOME,
    "home": Environment.HOME,
    "academia": Environment.GYM,
    "gym": Environment.GYM,
    "ambos": Environment.GYM,
    "both": Environment.GYM,
    "ar_livre": Environment.OUTDOOR,
    "ar livre": Environment.OUTDOOR,
    "outdoor": Environment.OUTDOOR,
    "parque": Environment.OUTDOOR,
}

_ELIGIBLE_ENVIRONMENTS: dict[Environment, frozenset[Environment]] = {
    Environment.GYM: frozenset(Environment),
    Environment.HOME: frozenset({Environment.HOME, Environment.BOTH}),
    Environment.OUTDOOR: frozenset({Environment.OUTDOOR, Environment.BOTH}),
}

SHOULDER_RESTRICTED_PATTERNS = frozenset({MovementPattern.VERTICAL_PUSH})
KNEE_RESTRICTED_PATTERNS = frozenset({MovementPattern.KNEE_DOMINANT})


def resolve_training_location(label: str | Environment | None) -> Environment:
    """Map a location label to the environment used for filtering.

    Missing, "ambos" and unrecognised labels resolve to the gym, which
    applies no exclusion.
    """
    if isinstance(label, Environment):
        return Environment.GYM if label == Environment.BOTH else label
    if not label:
        return Environment.GYM
    folded = _fold(str(label))
    env = _LOCATION_ALIASES.get(folded) or _LOCATION_ALIASES.get(folded.replace(" ", "_"))
    if env is None:
        logger.warning("Unknown training location %r; using gym", label, extra={"ctx_location": label})
        return Environment.GYM
    return env


def is_available_at(exercise: Exercise, location: str | Environment | None) -> bool:
    return exercise.environment in _ELIGIBLE_ENVIRONMENTS[resolve_training_location(location)]


def is_allowed_with_restrictions(
    exercise: Exercise,
    has_shoulder_restriction: bool = False,
    has_knee_restriction: bool = False,
) -> bool:
    if has_shoulder_restriction and exercise.pattern in SHOULDER_RESTRICTED_PATTERNS:
        return False
    if has_knee_restriction and exercise.pattern in KNEE_RESTRICTED_PATTERNS:
        return False
    return True


def eligible_exercises(
    muscle: str,
    location: str | Environment | None = None,
    has_shoulder_restriction: bool = False,
    has_knee_restriction: bool = False,
) -> list[Exercise]:
    """Catalog entries for a muscle that pass the location and joint filters.

    Structural entries come before isolated ones; within a role the
    registration order is kept so the result is deterministic.
    """
    target = normalize_muscle(muscle)
    env = resolve_training_location(location)
    allowed = _ELIGIBLE_ENVIRONMENTS[env]
    matches = [
        ex for ex in CATALOG.values()
        if ex.primary_muscle == target
        and ex.environment in allowed
        and is_allowed_with_restrictions(ex, has_shoulder_restriction, has_knee_restriction)
    ]
    return sorted(matches, key=lambda ex: 0 if ex.is_structural else 1)


def find_exercise(name: str) -> Exercise | None:
    """Look up an entry by exact name, falling back to an accent/case-insensitive match."""
    if name in CATALOG:
        return CATALOG[name]
    folded = _fold(name)
    for ex in CATALOG.values():
        if _fold(ex.name) == folded:
            return ex
    return None
