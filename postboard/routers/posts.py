from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from postboard.core.errors import NotFoundError
from postboard.core.rate_limiter import rate_limit_writes
from postboard.domain.models import PostConditions, PostPatch
from postboard.domain.query import PageQuery
from postboard.repositories import PostRepository
from postboard.routers.accounts import get_account_repository

router = APIRouter(tags=["microposts"])


class PostBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1, max_length=1000)


def _get_posts(request: Request) -> PostRepository:
    repo = getattr(getattr(request.app, "state", None), "posts", None)
    if not repo:
        raise RuntimeError("PostRepository not configured")
    return repo


def _listing(
    request: Request,
    owner_id: Optional[int],
    page: int,
    limit: int,
    order: str,
    search: Optional[str],
    since: Optional[datetime],
    until: Optional[datetime],
) -> dict:
    conditions = PostConditions(owner_id=owner_id, search=search, since=since, until=until)
    query = PageQuery(page=page, limit=limit, sort_by="createdAt", order=order)
    return _get_posts(request).find_with_pagination(conditions, query).to_dict()


@router.get("/users/{account_id}/microposts")
def list_account_posts(
    account_id: int,
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = Query(None, max_length=100),
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
):
    if not get_account_repository(request).exists(account_id):
        raise NotFoundError("Account", account_id)
    return _listing(request, account_id, page, limit, order, search, since, until)


@router.post(
    "/users/{account_id}/microposts",
    status_code=201,
    dependencies=[Depends(rate_limit_writes)],
)
def create_account_post(account_id: int, payload: PostBody, request: Request):
    post = _get_posts(request).create_for_owner(account_id, payload.content)
    return post.to_dict()


@router.get("/microposts")
def list_posts(
    request: Request,
    owner_id: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = Query(None, max_length=100),
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
):
    return _listing(request, owner_id, page, limit, order, search, since, until)


@router.get("/microposts/{post_id}")
def get_post(post_id: int, request: Request):
    return _get_posts(request).get(post_id).to_dict()


@router.patch("/microposts/{post_id}", dependencies=[Depends(rate_limit_writes)])
def update_post(post_id: int, payload: PostBody, request: Request):
    return _get_posts(request).update(post_id, PostPatch(content=payload.content)).to_dict()


@router.delete("/microposts/{post_id}", status_code=204, dependencies=[Depends(rate_limit_writes)])
def delete_post(post_id: int, request: Request):
    if not _get_posts(request).delete(post_id):
        raise NotFoundError("Post", post_id)
    return Response(status_code=204)
