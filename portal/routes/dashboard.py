"""
Dashboard counters and the charts page.

Routes:
    GET /           → dashboard.html (counters over every entity list)
    GET /graficas   → charts.html (students by state, books by publisher,
                      events by category, executive summary)

Both pages are admin-only; the numbers are aggregated in-process by
utils.statistics from full entity lists.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from portal.auth import SessionUser, current_token, get_services, require_admin
from portal.services import PortalServices
from portal.views import render
from utils.statistics import (
    books_by_publisher,
    build_bars,
    category_bars,
    chart_summary,
    events_by_category,
    publisher_bars,
    student_state_stats,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def dashboard(
    request: Request,
    user: SessionUser = Depends(require_admin),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    stats = services.collect_dashboard(token)
    return render(request, "dashboard.html", {"stats": stats})


@router.get("/graficas", response_class=HTMLResponse, include_in_schema=False)
def charts(
    request: Request,
    user: SessionUser = Depends(require_admin),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    lists = services.fetch_lists(token, {
        "students": lambda: services.all_students(token),
        "books": lambda: services.books.list(token).items,
        "events": lambda: services.events.list(token).items,
    })
    student_stats = student_state_stats(lists["students"])
    publishers = books_by_publisher(lists["books"])
    categories = events_by_category(lists["events"])
    logger.debug("charts students=%d books=%d events=%d",
                 len(lists["students"]), len(lists["books"]), len(lists["events"]))
    return render(request, "charts.html", {
        "student_stats": student_stats,
        "student_bars": build_bars(student_stats.as_pairs()),
        "publisher_bars": publisher_bars(publishers),
        "category_bars": category_bars(categories),
        "summary": chart_summary(student_stats, publishers, categories),
    })
