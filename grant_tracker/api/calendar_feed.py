"""HTTP endpoint serving an organization's milestones as an ICS feed."""

import hmac
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import Response

from ..context import create_context
from ..ics_feed import generate_feed

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_NAME = "Grant Tracker"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the application context on startup and close it on shutdown."""
    if getattr(app.state, "context", None) is None:
        app.state.context = create_context()
    yield
    app.state.context.close()


app = FastAPI(title="Grant Tracker", lifespan=lifespan)


def _secret_matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


@app.get("/api/orgs/{org_id}/calendar.ics")
def calendar_feed(org_id: str, request: Request, secret: Optional[str] = Query(None)) -> Response:
    """Return every dated milestone of the org's grants as text/calendar."""
    context = request.app.state.context

    try:
        preferences = context.preferences_for(org_id)
        org = context.repository.fetch_org_profile(org_id)
        expected = (
            preferences.calendar.ics_secret
            or (org.calendar_ics_secret if org else None)
            or context.config.calendar_ics_secret
        )
        if not _secret_matches(secret, expected):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        grants = context.repository.load_grants_for_org(org_id)
    except HTTPException:
        raise
    except Exception as exc:
        logger.error("Failed to load calendar data for org %s: %s", org_id, exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate calendar feed",
        ) from exc

    body = generate_feed(
        org_name=org.name if org else DEFAULT_CALENDAR_NAME,
        timezone_name=preferences.timezone,
        grants=grants,
        generated_at=datetime.now(timezone.utc),
    )
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'inline; filename="{org_id}-grants.ics"'},
    )
