from fastapi import APIRouter, Depends, status

from quiz_app.api.deps import Services, client_ip, get_guard, get_services, new_signup_form, rate_limit
from quiz_app.guard.errors import ErrorKind, FormRejected, IdentityServiceError, login_message_for
from quiz_app.guard.form import SignupForm
from quiz_app.guard.signup import SignupGuard
from quiz_app.guard.validation import compute_strength, normalize_email, strength_label
from quiz_app.schemas.auth import (
    ErrorOut,
    LoginIn,
    SignupIn,
    SignupOut,
    StrengthIn,
    StrengthOut,
    TokenOut,
)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=SignupOut,
    responses={400: {"model": ErrorOut}, 409: {"model": ErrorOut}, 429: {"model": ErrorOut}},
)
async def signup(
    payload: SignupIn,
    guard: SignupGuard = Depends(get_guard),
    form: SignupForm = Depends(new_signup_form),
    ip: str = Depends(client_ip),
):
    form.load(**payload.model_dump())
    outcome = await form.submit(guard, ip)
    if not outcome.ok:
        raise FormRejected(outcome.kind, outcome.message, outcome.violations)
    return SignupOut(message=outcome.message, user_id=outcome.user_id)

@router.post("/login", response_model=TokenOut, responses={401: {"model": ErrorOut}})
async def login(
    payload: LoginIn,
    services: Services = Depends(get_services),
    _: None = Depends(rate_limit(5, 60)),
):
    try:
        token = await services.identity.sign_in(normalize_email(payload.email), payload.password)
    except IdentityServiceError as exc:
        kind = exc.kind
        if kind in (ErrorKind.INVALID_EMAIL, ErrorKind.WEAK_PASSWORD):
            kind = ErrorKind.INVALID_CREDENTIALS
        raise FormRejected(kind, login_message_for(kind))
    return TokenOut(access_token=token)

@router.post("/password-strength", response_model=StrengthOut)
async def password_strength(payload: StrengthIn):
    score = compute_strength(payload.password)
    return StrengthOut(score=score, label=strength_label(score))
