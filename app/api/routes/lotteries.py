from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

import config
import lottery_service
from app.api.actor import Actor, current_actor
from app.schemas.lottery import DrawRequest, LotteryCreateRequest, TeamUpdateRequest, VerifyRequest
from lottery.draw import scripted_ball_source, validate_balls
from lottery.errors import (
    INVALID_BALLS,
    ConfigurationError,
    LotteryError,
    LotteryNotFoundError,
    LotteryPermissionError,
    LotteryStateError,
)
from lottery.types import DrawnPick

logger = logging.getLogger(__name__)

router = APIRouter()


def _db_path(request: Request) -> str:
    return str(request.app.state.db_path)


def _http_error(exc: LotteryError) -> HTTPException:
    if isinstance(exc, LotteryNotFoundError):
        status = 404
    elif isinstance(exc, LotteryPermissionError):
        status = 403
    elif isinstance(exc, LotteryStateError):
        status = 409
    else:
        status = 400
    logger.warning("lottery request rejected code=%s message=%s", exc.code, exc.message)
    return HTTPException(
        status_code=status,
        detail={"code": exc.code, "message": exc.message, "details": exc.details},
    )


def _session_payload(session, *, include_combinations: bool = True) -> Dict[str, Any]:
    d = session.to_dict()
    if not include_combinations:
        d.pop("combinations", None)
    d["may_start_drawing"] = session.may_start_drawing()
    d["next_pick"] = None if session.is_draw_complete() else session.next_pick_number()
    d["picks_required"] = session.picks_required()
    return d


@router.post("/api/lotteries")
async def api_lottery_create(req: LotteryCreateRequest, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        session = lottery_service.create_lottery(
            db_path,
            name=req.name,
            admin_id=actor.id,
            team_count=req.team_count,
            required_verifier_count=req.required_verifier_count,
        )
        return {"ok": True, "lottery": _session_payload(session)}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("lottery create failed")
        raise HTTPException(status_code=500, detail=f"Failed to create lottery: {exc}")


@router.get("/api/lotteries")
async def api_lottery_list(admin_id: Optional[str] = None, db_path: str = Depends(_db_path)):
    try:
        sessions = lottery_service.list_lotteries(db_path, admin_id=admin_id)
        return {"ok": True, "lotteries": [s.to_summary_dict() for s in sessions]}
    except Exception as exc:
        logger.exception("lottery list failed")
        raise HTTPException(status_code=500, detail=f"Failed to list lotteries: {exc}")


@router.get("/api/lotteries/{lottery_id}")
async def api_lottery_get(lottery_id: str, include_combinations: bool = True, db_path: str = Depends(_db_path)):
    """Polling endpoint for admins and observers."""
    try:
        session = lottery_service.get_lottery(db_path, lottery_id)
        return {"ok": True, "lottery": _session_payload(session, include_combinations=include_combinations)}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("lottery get failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to load lottery: {exc}")


@router.patch("/api/lotteries/{lottery_id}/teams/{team_id}")
async def api_lottery_update_team(
    lottery_id: str,
    team_id: str,
    req: TeamUpdateRequest,
    actor: Actor = Depends(current_actor),
    db_path: str = Depends(_db_path),
):
    try:
        team = lottery_service.update_team(
            db_path,
            lottery_id,
            team_id,
            actor_id=actor.id,
            name=req.name,
            emails=req.emails,
        )
        return {"ok": True, "team": team.to_dict()}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("team update failed id=%s team=%s", lottery_id, team_id)
        raise HTTPException(status_code=500, detail=f"Failed to update team: {exc}")


@router.post("/api/lotteries/{lottery_id}/setup/finish")
async def api_lottery_finish_setup(lottery_id: str, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        session = lottery_service.finish_setup(db_path, lottery_id, actor_id=actor.id)
        return {"ok": True, "lottery": _session_payload(session, include_combinations=False)}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("finish setup failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to finish setup: {exc}")


@router.post("/api/lotteries/{lottery_id}/verifiers")
async def api_lottery_verify(
    lottery_id: str,
    req: VerifyRequest,
    actor: Actor = Depends(current_actor),
    db_path: str = Depends(_db_path),
):
    try:
        session = lottery_service.add_verifier(
            db_path,
            lottery_id,
            user_id=actor.id,
            name=req.name or actor.display_name,
            email=req.email or actor.email,
        )
        return {
            "ok": True,
            "verifier_count": len(session.verifiers),
            "required_verifier_count": int(session.required_verifier_count),
            "may_start_drawing": session.may_start_drawing(),
        }
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("verify failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to verify lottery: {exc}")


@router.post("/api/lotteries/{lottery_id}/allocate")
async def api_lottery_allocate(lottery_id: str, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        combos = lottery_service.allocate(db_path, lottery_id, actor_id=actor.id)
        return {
            "ok": True,
            "total": len(combos),
            "assigned": sum(1 for c in combos if not c.is_dead),
            "combinations": [c.to_dict() for c in combos],
        }
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("allocate failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to generate combinations: {exc}")


@router.post("/api/lotteries/{lottery_id}/drawing/start")
async def api_lottery_start_drawing(lottery_id: str, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        session = lottery_service.start_drawing(db_path, lottery_id, actor_id=actor.id)
        return {"ok": True, "lottery": _session_payload(session, include_combinations=False)}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("start drawing failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to start drawing: {exc}")


@router.post("/api/lotteries/{lottery_id}/draw")
async def api_lottery_draw(
    lottery_id: str,
    req: DrawRequest,
    actor: Actor = Depends(current_actor),
    db_path: str = Depends(_db_path),
):
    """Draw for the next lottery pick.

    - default: one ball draw; the response is either an accepted pick or a retry
    - until_resolved: keep drawing until the pick is accepted
    - balls: resolve an explicit ball set instead of drawing at random

    A failed draw clears the "drawing" flag announced by begin_draw().
    """
    try:
        source = None
        if req.balls is not None:
            if req.until_resolved:
                raise ConfigurationError(INVALID_BALLS, "explicit balls cannot be combined with until_resolved")
            source = scripted_ball_source([validate_balls(req.balls)])
        rng = random.Random(int(req.rng_seed)) if req.rng_seed is not None else None

        lottery_service.begin_draw(db_path, lottery_id, actor_id=actor.id)
        retries = []
        try:
            pacing = config.get_draw_pacing_sec()
            if pacing > 0:
                await asyncio.sleep(pacing)

            if req.until_resolved:
                outcome, retries = lottery_service.draw_until_resolved(db_path, lottery_id, actor_id=actor.id, rng=rng)
            else:
                outcome = lottery_service.draw_next_pick(
                    db_path,
                    lottery_id,
                    actor_id=actor.id,
                    draw_balls=source,
                    rng=rng,
                )
        except Exception:
            lottery_service.abort_draw(db_path, lottery_id, actor_id=actor.id)
            raise

        session = lottery_service.get_lottery(db_path, lottery_id)
        accepted = isinstance(outcome, DrawnPick)
        return {
            "ok": True,
            "result": "accepted" if accepted else "retry",
            "pick": outcome.to_dict() if accepted else None,
            "retry": None if accepted else outcome.to_dict(),
            "retries": [r.to_dict() for r in retries],
            "draw_complete": session.is_draw_complete(),
            "next_pick": None if session.is_draw_complete() else session.next_pick_number(),
            "drawing_status_message": session.drawing_status_message,
        }
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("draw failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to draw: {exc}")


@router.post("/api/lotteries/{lottery_id}/draft-order")
async def api_lottery_compose(lottery_id: str, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        order = lottery_service.compose_draft_order(db_path, lottery_id, actor_id=actor.id)
        return {"ok": True, "status": "reveal", "draft_order": [p.to_dict() for p in order]}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("compose draft order failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to generate draft order: {exc}")


@router.post("/api/lotteries/{lottery_id}/complete")
async def api_lottery_complete(lottery_id: str, actor: Actor = Depends(current_actor), db_path: str = Depends(_db_path)):
    try:
        session = lottery_service.complete_lottery(db_path, lottery_id, actor_id=actor.id)
        return {"ok": True, "status": session.status}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("complete failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to complete lottery: {exc}")


@router.get("/api/lotteries/{lottery_id}/draw-log")
async def api_lottery_draw_log(lottery_id: str, db_path: str = Depends(_db_path)):
    try:
        return {"ok": True, "attempts": lottery_service.get_draw_log(db_path, lottery_id)}
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("draw log failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to load draw log: {exc}")


def _csv_response(filename: str, text: str) -> Response:
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/api/lotteries/{lottery_id}/export/combinations.csv")
async def api_lottery_export_combinations(lottery_id: str, db_path: str = Depends(_db_path)):
    try:
        filename, text = lottery_service.export_combinations_csv(db_path, lottery_id)
        return _csv_response(filename, text)
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("combinations export failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to export combinations: {exc}")


@router.get("/api/lotteries/{lottery_id}/export/draft-order.csv")
async def api_lottery_export_draft_order(lottery_id: str, db_path: str = Depends(_db_path)):
    try:
        filename, text = lottery_service.export_draft_order_csv(db_path, lottery_id)
        return _csv_response(filename, text)
    except LotteryError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("draft order export failed id=%s", lottery_id)
        raise HTTPException(status_code=500, detail=f"Failed to export draft order: {exc}")
