"""
Post routes: create/read/update/delete, likes and comments.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from socialnet.auth import check_object_id, get_current_profile
from socialnet.db import (
    POST_RESERVED_KEYS,
    Comment,
    DbClient,
    Like,
    PostRecord,
    ProfileRecord,
)
from socialnet.dependencies import get_db_client
from socialnet.schemas import (
    CommentRequest,
    CommentResponse,
    LikeResponse,
    MessageResponse,
    PostCreateRequest,
    PostResponse,
    PostUpdateRequest,
)

router = APIRouter(prefix="/posts", tags=["posts"])

POST_NOT_FOUND = "Post not found"
NOT_AUTHORIZED = "User not authorized"


def _get_post(db: DbClient, post_id: str) -> PostRecord:
    post = db.posts.get(post_id)
    if not post:
        raise HTTPException(status_code=404, detail=POST_NOT_FOUND)
    return post


def _get_owned_post(db: DbClient, post_id: str, profile: ProfileRecord) -> PostRecord:
    post = _get_post(db, post_id)
    if post.profile != profile.id:
        raise HTTPException(status_code=401, detail=NOT_AUTHORIZED)
    return post


def _likes(post: PostRecord) -> list[LikeResponse]:
    return [LikeResponse(id=like.id, profile=like.profile) for like in post.likes]


@router.post("", response_model=PostResponse)
def create_post(
    payload: PostCreateRequest,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    post = db.posts.add(PostRecord(profile=profile.id, text=payload.text))
    return PostResponse(**post.as_dict())


@router.get("", response_model=list[PostResponse])
def list_posts(db: DbClient = Depends(get_db_client)):
    return [PostResponse(**post.as_dict()) for post in db.posts.list_all()]


@router.get(
    "/{id}",
    response_model=PostResponse,
    dependencies=[Depends(check_object_id("id"))],
)
def get_post(id: str, db: DbClient = Depends(get_db_client)):
    return PostResponse(**_get_post(db, id).as_dict())


@router.delete(
    "/{id}",
    response_model=MessageResponse,
    dependencies=[Depends(check_object_id("id"))],
)
def delete_post(
    id: str,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    _get_owned_post(db, id, profile)
    db.posts.delete(id)
    return MessageResponse(msg="Post removed")


@router.put(
    "/{id}",
    response_model=PostResponse,
    dependencies=[Depends(check_object_id("id"))],
)
def update_post(
    id: str,
    payload: PostUpdateRequest,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    """Replace the text and merge any other submitted fields into the post."""
    post = _get_owned_post(db, id, profile)
    post.text = payload.text
    for key, value in (payload.model_extra or {}).items():
        if key not in POST_RESERVED_KEYS:
            post.extra[key] = value
    db.posts.save(post)
    return PostResponse(**post.as_dict())


@router.put(
    "/like/{id}",
    response_model=list[LikeResponse],
    dependencies=[Depends(check_object_id("id"))],
)
def like_post(
    id: str,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    post = _get_post(db, id)
    if post.liked_by(profile.id):
        raise HTTPException(status_code=400, detail="Post already liked")
    post.likes.insert(0, Like(profile=profile.id))
    db.posts.save(post)
    return _likes(post)


@router.put(
    "/unlike/{id}",
    response_model=list[LikeResponse],
    dependencies=[Depends(check_object_id("id"))],
)
def unlike_post(
    id: str,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    post = _get_post(db, id)
    index = next(
        (i for i, like in enumerate(post.likes) if like.profile == profile.id), None
    )
    if index is None:
        raise HTTPException(status_code=400, detail="Post has not yet been liked")
    del post.likes[index]
    db.posts.save(post)
    return _likes(post)


@router.post(
    "/comment/{id}",
    response_model=PostResponse,
    dependencies=[Depends(check_object_id("id"))],
)
def add_comment(
    id: str,
    payload: CommentRequest,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    post = _get_post(db, id)
    post.comments.insert(0, Comment(profile=profile.id, text=payload.text))
    db.posts.save(post)
    return PostResponse(**post.as_dict())


@router.delete(
    "/comment/{id}/{comment_id}",
    response_model=list[CommentResponse],
    dependencies=[
        Depends(check_object_id("id")),
        Depends(check_object_id("comment_id")),
    ],
)
def delete_comment(
    id: str,
    comment_id: str,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    post = _get_post(db, id)
    comment = post.find_comment(comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment does not exist")
    if comment.profile != profile.id:
        raise HTTPException(status_code=401, detail=NOT_AUTHORIZED)
    post.comments = [c for c in post.comments if c.id != comment_id]
    db.posts.save(post)
    return [CommentResponse(**vars(c)) for c in post.comments]
