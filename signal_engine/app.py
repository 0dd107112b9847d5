from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Generator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from signal_engine import services
from signal_engine.aggregation import CampaignNotFound
from signal_engine.db import init_db, session_generator
from signal_engine.models import OutreachQueue
from signal_engine.outreach import (
    OutreachNotEligible,
    app_base_url,
    check_outreach_thresholds,
    get_outreach_campaigns,
    schedule_outreach,
)
from signal_engine.renderers import format_report_as_html, format_report_as_markdown
from signal_engine.report import generate_demand_report
from signal_engine.schemas import (
    BusinessCaseOut,
    CachedScoreOut,
    CampaignScoreOut,
    DemandReportOut,
    OutreachOpportunityOut,
    QueuedOutreachOut,
    RefreshResult,
    ScheduleOutreachRequest,
    SignalScoreOut,
)
from signal_engine.scoring import TIERS

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Signal Engine",
    version="0.1.0",
    description=(
        "Demand signal API for consumer product campaigns. "
        "Scores campaigns, projects business cases, builds demand reports "
        "and queues brand outreach. All timestamps are UTC."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Scoring", "description": "Signal score calculation and the cached score sweep."},
        {"name": "Business Case", "description": "Revenue scenarios, pricing, confidence and break-even."},
        {"name": "Reports", "description": "Demand reports as JSON, Markdown or HTML."},
        {"name": "Outreach", "description": "Brand outreach eligibility and the outreach queue."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def db_session() -> Generator[Session, None, None]:
    yield from session_generator()


def _now() -> datetime:
    return datetime.now(UTC)


@app.exception_handler(CampaignNotFound)
async def campaign_not_found_handler(request: Request, exc: CampaignNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(OutreachNotEligible)
async def outreach_not_eligible_handler(request: Request, exc: OutreachNotEligible):
    return JSONResponse(status_code=409, content={"detail": str(exc), "tier": exc.tier.value})


# ---------------------------------------------------------------------------
# Routes: Scoring
# ---------------------------------------------------------------------------


@app.get("/api/campaigns/{campaign_id}/signal-score", response_model=SignalScoreOut,
         tags=["Scoring"], summary="Compute the live signal score of a campaign")
async def get_signal_score(campaign_id: int, session: Session = Depends(db_session)):
    result = services.calculate_signal_score(session, campaign_id, _now())
    return services.signal_result_dict(result)


@app.post("/api/campaigns/{campaign_id}/signal-score/refresh", response_model=CachedScoreOut,
          tags=["Scoring"], summary="Recompute and cache the signal score of a campaign")
async def refresh_signal_score(campaign_id: int, session: Session = Depends(db_session)):
    now = _now()
    score = services.update_cached_signal_score(session, campaign_id, now)
    session.commit()
    return {"campaign_id": campaign_id, "signal_score": score, "signal_score_updated_at": now}


@app.post("/api/signal-scores/refresh-stale", response_model=RefreshResult,
          tags=["Scoring"], summary="Refresh cached scores older than the staleness window")
async def refresh_stale_scores(
    stale_minutes: float = Query(services.DEFAULT_STALE_MINUTES, gt=0),
    batch_size: int = Query(services.REFRESH_BATCH_SIZE, ge=1, le=1000),
    session: Session = Depends(db_session),
):
    ids = services.refresh_stale_signal_scores(session, _now(), stale_minutes=stale_minutes, batch_size=batch_size)
    session.commit()
    return {"refreshed": len(ids), "campaign_ids": ids}


@app.get("/api/signal-tiers/{tier}", response_model=list[CampaignScoreOut],
         tags=["Scoring"], summary="List live campaigns in a signal tier by cached score")
async def list_campaigns_by_tier(
    tier: str,
    limit: int = Query(20, ge=1, le=200),
    session: Session = Depends(db_session),
):
    if tier not in TIERS:
        raise HTTPException(400, f"tier must be one of: {', '.join(TIERS)}")
    campaigns = services.campaigns_by_signal_tier(session, tier, limit=limit)
    return [services.campaign_score_summary(c) for c in campaigns]


# ---------------------------------------------------------------------------
# Routes: Business case & reports
# ---------------------------------------------------------------------------


@app.get("/api/campaigns/{campaign_id}/business-case", response_model=BusinessCaseOut,
         tags=["Business Case"], summary="Project revenue scenarios and break-even for a campaign")
async def get_business_case(campaign_id: int, session: Session = Depends(db_session)):
    return services.business_case_dict(services.business_case_for(session, campaign_id, _now()))


@app.get("/api/campaigns/{campaign_id}/report", tags=["Reports"],
         summary="Build a demand report (json, markdown or html)",
         responses={200: {"model": DemandReportOut}})
async def get_report(
    campaign_id: int,
    format: str = Query("json", pattern="^(json|markdown|html)$"),
    session: Session = Depends(db_session),
):
    now = _now()
    report = generate_demand_report(session, campaign_id, now)
    if format == "markdown":
        return PlainTextResponse(format_report_as_markdown(report, now), media_type="text/markdown")
    if format == "html":
        return HTMLResponse(format_report_as_html(report, now, site_url=app_base_url()))
    return DemandReportOut.model_validate(services.report_dict(report))


# ---------------------------------------------------------------------------
# Routes: Outreach
# ---------------------------------------------------------------------------


@app.get("/api/outreach", response_model=list[OutreachOpportunityOut],
         tags=["Outreach"], summary="List live campaigns that qualify for brand outreach")
async def list_outreach_opportunities(session: Session = Depends(db_session)):
    return [services.opportunity_dict(o) for o in get_outreach_campaigns(session)]


@app.get("/api/campaigns/{campaign_id}/outreach", response_model=OutreachOpportunityOut | None,
         tags=["Outreach"], summary="Outreach opportunity for one campaign, null if it does not qualify")
async def get_outreach_opportunity(campaign_id: int, session: Session = Depends(db_session)):
    opportunity = check_outreach_thresholds(session, campaign_id)
    return services.opportunity_dict(opportunity) if opportunity else None


@app.post("/api/campaigns/{campaign_id}/outreach", response_model=QueuedOutreachOut, status_code=201,
          tags=["Outreach"], summary="Render the demand report email and queue it for a brand")
async def queue_outreach(campaign_id: int, body: ScheduleOutreachRequest, session: Session = Depends(db_session)):
    queued = schedule_outreach(session, campaign_id, body.brand_email, body.brand_name, _now())
    session.commit()
    return QueuedOutreachOut.model_validate(queued, from_attributes=True)


@app.get("/api/outreach/queue", response_model=list[QueuedOutreachOut],
         tags=["Outreach"], summary="List queued outreach emails, newest first")
async def list_outreach_queue(
    status: str | None = Query(None),
    session: Session = Depends(db_session),
):
    query = select(OutreachQueue).order_by(OutreachQueue.created_at.desc(), OutreachQueue.id.desc())
    if status:
        query = query.where(OutreachQueue.status == status.upper())
    rows = session.execute(query).scalars().all()
    return [QueuedOutreachOut.model_validate(r, from_attributes=True) for r in rows]


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("signal_engine.app:app", host="127.0.0.1", port=8002, reload=True)


if __name__ == "__main__":
    main()
