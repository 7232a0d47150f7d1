from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrm.authz import PermissionEngine
from hrm.db.session import get_db
from hrm.models.security import User
from hrm.schemas.security import (
    LoginIn,
    MeOut,
    MessageOut,
    OtpSendIn,
    OtpVerifyIn,
    RefreshIn,
    RegisterIn,
    ScopedPermissionOut,
    TokenPairOut,
    UserOut,
)
from hrm.security.auth import load_user, subject_for
from hrm.security.dependencies import get_current_user, get_permission_engine
from hrm.security.otp import OtpCooldownError, OtpError, issue_otp, verify_otp
from hrm.security.passwords import PasswordError, hash_password, verify_password
from hrm.security.tokens import REFRESH, TokenError, TokenPair, decode_token, issue_token_pair, user_id_from_claims
from hrm.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_out(pair: TokenPair) -> TokenPairOut:
    return TokenPairOut(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )


@router.post("/otp/send", response_model=MessageOut)
def send_otp(body: OtpSendIn, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> MessageOut:
    try:
        issue_otp(db, body.phone, settings)
    except OtpCooldownError as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc)) from exc
    except OtpError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    db.commit()
    return MessageOut(message="OTP sent successfully")


@router.post("/otp/verify", response_model=TokenPairOut)
def verify_otp_login(
    body: OtpVerifyIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TokenPairOut:
    try:
        user = verify_otp(db, body.phone, body.code, settings)
    except OtpError as exc:
        db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    db.commit()
    return _token_out(issue_token_pair(user, settings))


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterIn, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> User:
    identities = [User.username == body.username, User.email == body.email]
    if body.phone:
        identities.append(User.phone == body.phone)
    if db.scalars(select(User.id).where(or_(*identities))).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    try:
        password_hash = hash_password(body.password, settings.password_hash_rounds)
    except PasswordError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    user = User(
        username=body.username,
        email=body.email,
        phone=body.phone,
        role_id=settings.registration_role_id,
        password_hash=password_hash,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists") from exc

    logger.info("User registered user_id=%s role=%s", user.id, user.role_id)
    return load_user(db, user.id)


@router.post("/login", response_model=TokenPairOut)
def password_login(body: LoginIn, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> TokenPairOut:
    user = db.scalars(select(User).where(or_(User.username == body.login, User.email == body.login))).first()
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("Password login failed login=%s", body.login)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    user.last_seen_at = datetime.utcnow()
    db.commit()
    return _token_out(issue_token_pair(user, settings))


@router.post("/logout", response_model=MessageOut)
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> MessageOut:
    # Tokens are stateless; they stay valid until they expire.
    db.execute(update(User).where(User.id == user.id).values(last_seen_at=datetime.utcnow()))
    db.commit()
    return MessageOut(message="Logged out")


@router.post("/refresh", response_model=TokenPairOut)
def refresh(body: RefreshIn, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> TokenPairOut:
    try:
        claims = decode_token(body.refresh_token, settings, expected_type=REFRESH)
        user_id = user_id_from_claims(claims)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    user = load_user(db, user_id)
    return _token_out(issue_token_pair(user, settings))


@router.get("/me", response_model=MeOut)
def me(
    user: User = Depends(get_current_user),
    engine: PermissionEngine = Depends(get_permission_engine),
) -> MeOut:
    subject = subject_for(user)
    return MeOut(
        user=UserOut.model_validate(user),
        level=engine.level_of(subject),
        permissions=[ScopedPermissionOut(**p.to_dict()) for p in engine.permissions_for(subject)],
    )
