"""
Tourbook Backend — Server-Rendered Views
=========================================

What:  GET / (tour overview) and GET /tour/{slug} (tour detail) as HTML.
How:   Small inline templates filled with html.escape()d values; the pages
       link /css/style.css, which the static files middleware serves from
       the public directory.
"""

import html
from typing import Iterable

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import get_db_session
from tourbook.models.tour import Tour
from tourbook.services.tour_service import tour_service

router = APIRouter(tags=["Views"], include_in_schema=False)

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<link rel="stylesheet" href="/css/style.css">
<title>Tourbook | {title}</title>
</head>
<body>
<header class="header"><a class="header__logo" href="/">Tourbook</a></header>
<main class="main">
{body}
</main>
</body>
</html>
"""

_CARD = """<article class="card">
<h3 class="card__title"><a href="/tour/{slug}">{name}</a></h3>
<p class="card__summary">{summary}</p>
<p class="card__details">{duration}-day {difficulty} tour &middot; {rating} ({quantity} ratings)</p>
<p class="card__price">${price}</p>
</article>"""


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def render_page(title: str, body: str) -> str:
    return _PAGE.format(title=_e(title), body=body)


def render_overview(tours: Iterable[Tour]) -> str:
    cards = [
        _CARD.format(
            slug=_e(tour.slug),
            name=_e(tour.name),
            summary=_e(tour.summary),
            duration=tour.duration,
            difficulty=_e(tour.difficulty),
            rating=tour.ratings_average,
            quantity=tour.ratings_quantity,
            price=_e(f"{tour.price:g}"),
        )
        for tour in tours
    ]
    body = '<div class="card-container">\n' + "\n".join(cards) + "\n</div>"
    if not cards:
        body = '<p class="empty">No tours yet.</p>'
    return render_page("All Tours", body)


def render_tour(tour: Tour) -> str:
    dates = "".join(f"<li>{_e(d)}</li>" for d in tour.start_dates or [])
    body = (
        f'<section class="tour">\n'
        f'<h1 class="heading-primary">{_e(tour.name)}</h1>\n'
        f"<p>{_e(tour.description or tour.summary)}</p>\n"
        f'<ul class="tour__facts">'
        f"<li>Difficulty: {_e(tour.difficulty)}</li>"
        f"<li>Duration: {tour.duration} days</li>"
        f"<li>Group size: up to {tour.max_group_size}</li>"
        f"<li>Rating: {tour.ratings_average} / 5</li>"
        f"</ul>\n"
        f'<ul class="tour__dates">{dates}</ul>\n'
        f"</section>"
    )
    return render_page(f"{tour.name} Tour", body)


@router.get("/", response_class=HTMLResponse)
async def get_overview(db: AsyncSession = Depends(get_db_session)) -> HTMLResponse:
    result = await db.execute(select(Tour).order_by(Tour.created_at.desc()))
    return HTMLResponse(render_overview(result.scalars().all()))


@router.get("/tour/{slug}", response_class=HTMLResponse)
async def get_tour_page(slug: str, db: AsyncSession = Depends(get_db_session)) -> HTMLResponse:
    tour = await tour_service.get_by_slug(db, slug)
    return HTMLResponse(render_tour(tour))
