from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from torsim.api.deps import get_dice_source
from torsim.api.schemas import RollRequest, RollResponse
from torsim.core.engine.dice import DiceSource, format_roll, roll_adversary, roll_check

router = APIRouter(prefix="/dice", tags=["dice"])


@router.post("/roll", response_model=RollResponse)
def roll(payload: RollRequest, rng: Optional[DiceSource] = Depends(get_dice_source)):
    # negative pools roll zero success dice
    dice = max(0, payload.dice_count)
    roller = roll_adversary if payload.side == "adversary" else roll_check
    result = roller(dice, payload.feat_mode, payload.weary, payload.target_number, rng=rng)
    return RollResponse(result=result, text=format_roll(result, label=payload.label))
