from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from postboard.core.errors import NotFoundError
from postboard.core.rate_limiter import rate_limit_writes
from postboard.domain.models import AccountPatch
from postboard.domain.query import PageQuery
from postboard.repositories import AccountRepository

router = APIRouter(prefix="/users", tags=["users"])


class AccountCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254)
    roles: list[str] = Field(default_factory=list)


class AccountUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    roles: Optional[list[str]] = None


def get_account_repository(request: Request) -> AccountRepository:
    repo = getattr(getattr(request.app, "state", None), "accounts", None)
    if not repo:
        raise RuntimeError("AccountRepository not configured")
    return repo


@router.get("")
def list_accounts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("created_desc", pattern="^(name|created)_(asc|desc)$"),
    search: Optional[str] = Query(None, max_length=100),
):
    query = PageQuery.from_sort_token(sort, page=page, limit=limit)
    return get_account_repository(request).find_with_pagination(search, query).to_dict()


@router.get("/stats")
def account_stats(request: Request):
    return get_account_repository(request).get_stats()


@router.post("", status_code=201, dependencies=[Depends(rate_limit_writes)])
def create_account(payload: AccountCreate, request: Request):
    account = get_account_repository(request).create(payload.model_dump())
    return account.to_dict()


@router.get("/{account_id}")
def get_account(account_id: int, request: Request):
    return get_account_repository(request).get(account_id).to_dict()


@router.patch("/{account_id}", dependencies=[Depends(rate_limit_writes)])
def update_account(account_id: int, payload: AccountUpdate, request: Request):
    patch = AccountPatch(**payload.model_dump(exclude_unset=True))
    return get_account_repository(request).update(account_id, patch).to_dict()


@router.delete("/{account_id}", status_code=204, dependencies=[Depends(rate_limit_writes)])
def delete_account(account_id: int, request: Request):
    if not get_account_repository(request).delete(account_id):
        raise NotFoundError("Account", account_id)
    return Response(status_code=204)
