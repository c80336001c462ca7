"""
Session endpoints.

Signing in does not verify credentials; it is a stand-in for a real
identity provider. The returned ``session_id`` goes in the ``X-Session-ID``
header of later requests.
"""

from fastapi import APIRouter, Depends, Header, status

from patient_portal.api.dependencies import SESSION_HEADER, get_optional_session, get_session_manager
from patient_portal.api.schemas import LoginForm
from patient_portal.domains.sessions import Session, SessionManager

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def sign_in(
    form: LoginForm,
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
):
    session = sessions.sign_in(str(form.email), form.password)
    return {"session": session.to_dict()}


@router.get("")
async def current_session(
    session: Session | None = Depends(get_optional_session),  # noqa: B008
):
    return {"session": session.to_dict() if session else None}


@router.delete("")
async def sign_out(
    x_session_id: str | None = Header(None, alias=SESSION_HEADER),
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
):
    sessions.sign_out(x_session_id)
    return {"session": None}
