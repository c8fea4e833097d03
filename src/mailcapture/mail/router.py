"""Mail API endpoints.

- GET /mail                              redirect to the current week
- GET /mail/{year}/{week}                summaries of one ISO week
- GET /mail/{domain}/{username}/{file}   one stored artifact
"""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from .service import MailReader

router = APIRouter(prefix="/mail", tags=["Mail"])

YEAR_RE = re.compile(r"[0-9]{4}")
WEEK_RE = re.compile(r"[0-9]{1,2}")


def not_found() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": "Not Found"},
    )


def get_mail_reader(request: Request) -> MailReader:
    return request.app.state.mail_reader


@router.get("")
async def redirect_to_current_week(
    request: Request,
    reader: Annotated[MailReader, Depends(get_mail_reader)],
):
    """Redirect to the listing of the current UTC ISO week."""
    year, week = reader.current_bucket()
    url = f"{reader.api_prefix}/mail/{year}/{week}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@router.get("/{year}/{week}")
async def list_week(
    year: str,
    week: str,
    reader: Annotated[MailReader, Depends(get_mail_reader)],
):
    """List summaries captured in one week, newest first.

    Year must be four digits and week one or two, anything else is 404.
    """
    if not (YEAR_RE.fullmatch(year) and WEEK_RE.fullmatch(week)):
        return not_found()
    return await reader.list_bucket(int(year), int(week))


@router.get("/{domain}/{username}/{message_filename}")
async def get_message(
    domain: str,
    username: str,
    message_filename: str,
    reader: Annotated[MailReader, Depends(get_mail_reader)],
):
    """Return a stored decoded message (or decode error) as JSON."""
    message = await reader.fetch_message(domain, username, message_filename)
    if message is None:
        return not_found()
    return message
