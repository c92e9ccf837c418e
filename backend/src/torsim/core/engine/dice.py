from __future__ import annotations

import logging
import random
from typing import List, Literal, Optional, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

FeatMode = Literal["normal", "favoured", "illFavoured"]
FeatKind = Literal["Number", "Eye", "Gandalf"]
Degree = Literal["Success", "Great Success", "Extraordinary Success"]
RollSide = Literal["hero", "adversary"]

GANDALF_RANK = 999
MAX_FEAT_VALUE = 10
PIERCE_BONUS = 2


class DiceSource(Protocol):
    """Anything with randint(a, b) inclusive. random.Random fits."""

    def randint(self, a: int, b: int) -> int: ...


class FeatDie(BaseModel):
    kind: FeatKind
    value: Optional[int] = None  # only for kind == "Number"

    @classmethod
    def number(cls, value: int) -> "FeatDie":
        return cls(kind="Number", value=value)

    @classmethod
    def eye(cls) -> "FeatDie":
        return cls(kind="Eye")

    @classmethod
    def gandalf(cls) -> "FeatDie":
        return cls(kind="Gandalf")

    @property
    def is_eye(self) -> bool:
        return self.kind == "Eye"

    @property
    def is_gandalf(self) -> bool:
        return self.kind == "Gandalf"


class SuccessDie(BaseModel):
    value: int = Field(ge=1, le=6)

    @property
    def icon(self) -> bool:
        return self.value == 6


class RollResult(BaseModel):
    side: RollSide = "hero"
    feat_mode: FeatMode = "normal"
    weary: bool = False

    feat: FeatDie
    feat2: Optional[FeatDie] = None  # the other die on favoured / ill-favoured rolls
    success: List[SuccessDie] = Field(default_factory=list)

    icons: int = 0
    total: int = 0
    target_number: Optional[int] = None
    passed: Optional[bool] = None
    degree: Optional[Degree] = None

    @property
    def is_automatic_success(self) -> bool:
        return self.side == "hero" and self.feat.is_gandalf

    @property
    def is_eye(self) -> bool:
        return self.feat.is_eye


def _source(rng: Optional[DiceSource]) -> DiceSource:
    return rng if rng is not None else random


# --- primitives ---


def roll_feat_die(rng: Optional[DiceSource] = None) -> FeatDie:
    r = _source(rng).randint(1, 12)
    if r == 11:
        return FeatDie.eye()
    if r == 12:
        return FeatDie.gandalf()
    return FeatDie.number(r)


def roll_success_die(rng: Optional[DiceSource] = None) -> SuccessDie:
    return SuccessDie(value=_source(rng).randint(1, 6))


def feat_die_rank(d: FeatDie) -> int:
    # Eye worst, numbers by value, Gandalf best
    if d.kind == "Eye":
        return 0
    if d.kind == "Number":
        return int(d.value or 0)
    return GANDALF_RANK


def pick_feat_die(a: FeatDie, b: FeatDie, mode: FeatMode) -> FeatDie:
    ra = feat_die_rank(a)
    rb = feat_die_rank(b)
    if mode == "favoured":
        return b if rb > ra else a
    if mode == "illFavoured":
        return b if rb < ra else a
    return a


def hero_feat_value(d: FeatDie) -> int:
    if d.kind == "Number":
        return int(d.value or 0)
    return 0


def adversary_feat_value(d: FeatDie) -> int:
    # The Eye favours the shadow side: best possible feat result for an adversary.
    if d.kind == "Eye":
        return MAX_FEAT_VALUE
    if d.kind == "Number":
        return int(d.value or 0)
    return 0


def success_sum(dice: List[SuccessDie], weary: bool) -> int:
    total = 0
    for d in dice:
        if weary and d.value <= 3:
            continue
        total += d.value
    return total


def count_icons(dice: List[SuccessDie]) -> int:
    return sum(1 for d in dice if d.icon)


def classify_degree(icons: int) -> Degree:
    if icons <= 0:
        return "Success"
    if icons == 1:
        return "Great Success"
    return "Extraordinary Success"


def _roll_pool(
    dice_count: int, feat_mode: FeatMode, rng: Optional[DiceSource]
) -> tuple[FeatDie, Optional[FeatDie], List[SuccessDie]]:
    src = _source(rng)
    feat_a = roll_feat_die(src)
    feat_b: Optional[FeatDie] = None
    feat = feat_a
    if feat_mode in ("favoured", "illFavoured"):
        feat_b = roll_feat_die(src)
        feat = pick_feat_die(feat_a, feat_b, feat_mode)
    other = None
    if feat_b is not None:
        other = feat_b if feat is feat_a else feat_a
    success = [roll_success_die(src) for _ in range(max(0, int(dice_count)))]
    return feat, other, success


# --- hero side ---


def roll_check(
    dice_count: int,
    feat_mode: FeatMode = "normal",
    weary: bool = False,
    target_number: Optional[int] = None,
    *,
    rng: Optional[DiceSource] = None,
) -> RollResult:
    feat, other, success = _roll_pool(dice_count, feat_mode, rng)
    icons = count_icons(success)
    total = hero_feat_value(feat) + success_sum(success, weary)

    passed: Optional[bool] = None
    degree: Optional[Degree] = None
    if target_number is not None:
        passed = True if feat.is_gandalf else total >= target_number
        if passed:
            degree = classify_degree(icons)

    logger.debug(
        "hero roll: feat=%s dice=%s total=%s tn=%s passed=%s",
        feat.kind,
        [d.value for d in success],
        total,
        target_number,
        passed,
    )
    return RollResult(
        side="hero",
        feat_mode=feat_mode,
        weary=weary,
        feat=feat,
        feat2=other,
        success=success,
        icons=icons,
        total=total,
        target_number=target_number,
        passed=passed,
        degree=degree,
    )


# --- adversary side ---


def adversary_total(
    feat: FeatDie, success: List[SuccessDie], weary: bool, pierce_count: int = 0
) -> int:
    feat_value = adversary_feat_value(feat)
    if pierce_count > 0:
        feat_value = min(MAX_FEAT_VALUE, feat_value + PIERCE_BONUS * pierce_count)
    return feat_value + success_sum(success, weary)


def roll_adversary(
    dice_count: int,
    feat_mode: FeatMode = "normal",
    weary: bool = False,
    target_number: Optional[int] = None,
    *,
    rng: Optional[DiceSource] = None,
) -> RollResult:
    feat, other, success = _roll_pool(dice_count, feat_mode, rng)
    icons = count_icons(success)
    total = adversary_total(feat, success, weary)

    passed: Optional[bool] = None
    degree: Optional[Degree] = None
    if target_number is not None:
        passed = True if feat.is_eye else total >= target_number
        if passed:
            degree = classify_degree(icons)

    logger.debug(
        "adversary roll: feat=%s dice=%s total=%s tn=%s passed=%s",
        feat.kind,
        [d.value for d in success],
        total,
        target_number,
        passed,
    )
    return RollResult(
        side="adversary",
        feat_mode=feat_mode,
        weary=weary,
        feat=feat,
        feat2=other,
        success=success,
        icons=icons,
        total=total,
        target_number=target_number,
        passed=passed,
        degree=degree,
    )


def recompute_adversary_total(
    roll: RollResult, pierce_count: int, target_number: int
) -> RollResult:
    """
    Re-evaluate an adversary roll after special successes were assigned.
    Weariness and the Eye rule are re-applied exactly as in roll_adversary.
    """
    total = adversary_total(roll.feat, roll.success, roll.weary, pierce_count)
    passed = True if roll.feat.is_eye else total >= target_number
    return roll.model_copy(
        update={
            "total": total,
            "target_number": target_number,
            "passed": passed,
            "degree": classify_degree(roll.icons) if passed else None,
        }
    )


# --- journal text ---


def _feat_text(d: FeatDie) -> str:
    if d.kind == "Number":
        return str(d.value)
    if d.kind == "Eye":
        return "Sauron"
    return "Gandalf"


def format_roll(
    r: RollResult, label: Optional[str] = None, target_number: Optional[int] = None
) -> str:
    tn = target_number if target_number is not None else r.target_number
    feat_txt = _feat_text(r.feat)
    also = f" (also {_feat_text(r.feat2)})" if r.feat2 is not None else ""
    succ = ", ".join("6(★)" if d.icon else str(d.value) for d in r.success)
    stars = f" ({r.icons} ★)" if r.icons else ""

    prefix = ""
    if r.passed is not None and tn is not None:
        if r.passed:
            prefix = f"PASS{f' — {r.degree}' if r.degree else ''}. "
        else:
            prefix = "FAIL. "
    tn_txt = f" (TN {tn})" if tn is not None else ""
    body = f"{prefix}Feat {feat_txt}{also}, Success {succ or '—'}{stars} Total {r.total}{tn_txt}."
    label = (label or "").strip()
    return f"{label} - {body}" if label else body
