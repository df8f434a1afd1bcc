"""
Compatibility scoring between one student and one referent.

score = sum(weight_k * subscore_k) / 100, rounded half-up, clamped to [0, 100]

Sub-scores (each already normalised to [0, 100]):
  domain        share of the student's project domains the referent covers;
                an exact (case-insensitive) match counts 1, a shared word
                between two domains counts 0.5
  language      share of the student's languages the referent speaks
  availability  share of the student's availability slots the referent also has
  history       100 if the student has worked with this referent before

Default weights are 40 / 25 / 20 / 15 (see models.Weights). Missing or empty
data on either side gives a sub-score of 0; nothing here raises on
well-typed input.
"""

from __future__ import annotations

import hashlib
import math
from typing import Dict, Iterable, List, Optional, Sequence

from referent_engine.io_json import ConfigError
from referent_engine.models import Referent, Student, Weights

ScoreMatrix = Dict[str, Dict[str, int]]

_DEFAULT_WEIGHTS = Weights()

EXCELLENT_SCORE = 80
GOOD_SCORE      = 60
FAIR_SCORE      = 40


def _norm(value: str) -> str:
    return " ".join(value.strip().lower().split())


def _words(value: str) -> set:
    return {w for w in _norm(value).replace("-", " ").replace("/", " ").split() if w}


def _share(wanted: Iterable[str], offered: Iterable[str]) -> float:
    want = {_norm(v) for v in wanted if _norm(v)}
    if not want:
        return 0.0
    have = {_norm(v) for v in offered}
    return 100.0 * len(want & have) / len(want)


def domain_subscore(student: Student, referent: Referent) -> float:
    domains = [_norm(d) for d in student.project_domains if _norm(d)]
    if not domains:
        return 0.0
    offered = {_norm(d) for d in referent.expertise.domains}
    offered_words: set = set()
    for d in offered:
        offered_words |= _words(d)

    total = 0.0
    for d in domains:
        if d in offered:
            total += 1.0
        elif _words(d) & offered_words:
            total += 0.5
    return 100.0 * total / len(domains)


def language_subscore(student: Student, referent: Referent) -> float:
    return _share(student.languages, referent.expertise.languages)


def availability_subscore(student: Student, referent: Referent) -> float:
    return _share(student.availability, referent.expertise.availability)


def history_subscore(student: Student, referent: Referent) -> float:
    return 100.0 if referent.id in student.previous_referent_ids else 0.0


def check_weights(weights: Weights) -> None:
    if min(weights.domain, weights.language, weights.availability, weights.history) < 0:
        raise ConfigError("All compatibility weights must be >= 0")
    if weights.total() != 100:
        raise ConfigError(f"Compatibility weights must sum to 100, got {weights.total()}")


def _round_half_up(x: float) -> int:
    # round() rounds half to even, which would bias .5 scores downwards.
    return int(math.floor(x + 0.5))


def score(student: Student, referent: Referent, weights: Optional[Weights] = None) -> int:
    """Compatibility of one (student, referent) pair as an integer in [0, 100]."""
    w = weights or _DEFAULT_WEIGHTS
    if weights is not None:
        check_weights(weights)
    raw = (
        w.domain       * domain_subscore(student, referent)
        + w.language     * language_subscore(student, referent)
        + w.availability * availability_subscore(student, referent)
        + w.history      * history_subscore(student, referent)
    ) / 100.0
    return max(0, min(100, _round_half_up(raw)))


def score_all(
    students:  Sequence[Student],
    referents: Sequence[Referent],
    weights:   Optional[Weights] = None,
) -> ScoreMatrix:
    """student_id -> referent_id -> score for every pair."""
    if weights is not None:
        check_weights(weights)
    return {
        s.id: {r.id: score(s, r, weights) for r in referents}
        for s in students
    }


def fallback_score(student_id: str, referent_id: str) -> int:
    """
    Stable placeholder score derived from the two ids.

    Only for display when a caller has no expertise data at all. It carries no
    information about fit and the planners never use it.
    """
    digest = hashlib.sha256(f"{student_id}:{referent_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % 101


def score_level(value: int) -> str:
    """Band of a compatibility score for the matrix view: excellent, good, fair or poor."""
    if value >= EXCELLENT_SCORE:
        return "excellent"
    if value >= GOOD_SCORE:
        return "good"
    if value >= FAIR_SCORE:
        return "fair"
    return "poor"


def ranked_referents(student_id: str, matrix: ScoreMatrix) -> List[str]:
    """Referent ids for one student, best score first (ties by id)."""
    row = matrix.get(student_id, {})
    return sorted(row, key=lambda rid: (-row[rid], rid))
