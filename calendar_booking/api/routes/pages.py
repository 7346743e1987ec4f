from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from calendar_booking.api.html_pages import render_calendar_form, render_home_page

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    return HTMLResponse(render_home_page())


@router.get("/calendar-form", response_class=HTMLResponse)
def calendar_form() -> HTMLResponse:
    return HTMLResponse(render_calendar_form())
