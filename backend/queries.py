"""Read path: event scans and object fetches against the suitter module."""
import logging
from typing import Any, Dict, List, Optional

import config
from sui_rpc import SuiRpcClient, SuiRpcError, move_event_type

logger = logging.getLogger(__name__)

POSTS_LIMIT = 50
EVENTS_SCAN_LIMIT = 100


class ObjectNotFound(Exception):
    def __init__(self, kind: str, object_id: str):
        super().__init__(f"{kind} not found: {object_id}")
        self.kind = kind
        self.object_id = object_id


def _event_type(name: str) -> str:
    return move_event_type(config.PACKAGE_ID, name, config.MODULE_NAME)


def _fetch_many(rpc: SuiRpcClient, ids: List[str]) -> List[Dict[str, Any]]:
    if not ids:
        return []
    responses = rpc.multi_get_objects(ids)
    return [r["data"] for r in responses if r.get("data")]


def _fetch_one(rpc: SuiRpcClient, object_id: str, kind: str = "Object") -> Dict[str, Any]:
    response = rpc.get_object(object_id)
    if not response.get("data"):
        raise ObjectNotFound(kind, object_id)
    return response["data"]


def object_fields(obj: Dict[str, Any]) -> Dict[str, Any]:
    return (obj.get("content") or {}).get("fields") or {}


def get_all_posts(rpc: SuiRpcClient, limit: int = POSTS_LIMIT) -> List[Dict[str, Any]]:
    logger.info("Fetching posts via event query")
    events = rpc.query_events(_event_type("PostCreated"), limit=limit)
    post_ids = [
        e["parsedJson"]["post_id"]
        for e in events.get("data") or []
        if (e.get("parsedJson") or {}).get("post_id")
    ]
    if not post_ids:
        logger.info("No post events found")
        return []

    logger.info("Found %d posts from events", len(post_ids))
    return _fetch_many(rpc, post_ids)


def get_object(rpc: SuiRpcClient, object_id: str) -> Dict[str, Any]:
    return _fetch_one(rpc, object_id)


def get_profile(rpc: SuiRpcClient, profile_id: str) -> Dict[str, Any]:
    return _fetch_one(rpc, profile_id, "Profile")


def get_post(rpc: SuiRpcClient, post_id: str) -> Dict[str, Any]:
    return _fetch_one(rpc, post_id, "Post")


def get_comment(rpc: SuiRpcClient, comment_id: str) -> Dict[str, Any]:
    return _fetch_one(rpc, comment_id, "Comment")


def get_reply(rpc: SuiRpcClient, reply_id: str) -> Dict[str, Any]:
    return _fetch_one(rpc, reply_id, "Reply")


def check_username_availability(rpc: SuiRpcClient, username: str) -> bool:
    """A username is taken when the registry holds a dynamic field for it."""
    try:
        response = rpc.get_dynamic_field_object(config.REGISTRY_ID, "0x1::string::String", username)
    except SuiRpcError:
        # unknown means unavailable
        logger.exception("Error checking username availability")
        return False
    return not response.get("data")


def get_user_likes(rpc: SuiRpcClient, profile_id: str) -> List[str]:
    fields = object_fields(get_profile(rpc, profile_id))
    liked_posts = fields.get("liked_posts") or {}
    return list((liked_posts.get("fields") or {}).get("contents") or [])


def get_user_like_objects(rpc: SuiRpcClient, profile_id: str) -> List[Dict[str, str]]:
    """Pair each post still liked by the profile with its Like object id."""
    liked_post_ids = set(get_user_likes(rpc, profile_id))
    if not liked_post_ids:
        return []

    likes = []
    for event in rpc.iter_events(_event_type("PostLiked"), max_items=EVENTS_SCAN_LIMIT):
        parsed = event.get("parsedJson") or {}
        if parsed.get("user_profile_id") == profile_id and parsed.get("post_id") in liked_post_ids:
            likes.append({"postId": parsed["post_id"], "likeId": parsed["like_id"]})

    logger.info("Matched %d Like objects for profile %s", len(likes), profile_id)
    return likes


def _children(rpc: SuiRpcClient, event: str, parent_key: str, parent_id: str, child_key: str) -> List[Dict[str, Any]]:
    child_ids = []
    for e in rpc.iter_events(_event_type(event), max_items=EVENTS_SCAN_LIMIT):
        parsed = e.get("parsedJson") or {}
        if parsed.get(parent_key) == parent_id and parsed.get(child_key):
            child_ids.append(parsed[child_key])
    return _fetch_many(rpc, child_ids)


def get_post_comments(rpc: SuiRpcClient, post_id: str) -> List[Dict[str, Any]]:
    return _children(rpc, "CommentCreated", "post_id", post_id, "comment_id")


def get_comment_replies(rpc: SuiRpcClient, comment_id: str) -> List[Dict[str, Any]]:
    return _children(rpc, "ReplyCreated", "comment_id", comment_id, "reply_id")


def list_profile_events(rpc: SuiRpcClient) -> List[Dict[str, Any]]:
    return [
        e.get("parsedJson") or {}
        for e in rpc.iter_events(_event_type("ProfileCreated"), max_items=EVENTS_SCAN_LIMIT)
    ]


def find_profile_by_address(rpc: SuiRpcClient, address: str) -> Optional[Dict[str, Any]]:
    """Walk every ProfileCreated event, newest first, until the owner matches."""
    address = address.lower()
    for event in rpc.iter_events(_event_type("ProfileCreated"), max_items=None):
        parsed = event.get("parsedJson") or {}
        if (parsed.get("owner") or "").lower() == address and parsed.get("profile_id"):
            responses = rpc.multi_get_objects([parsed["profile_id"]])
            # a deleted profile leaves its event behind; keep looking
            if responses and responses[0].get("data"):
                return responses[0]["data"]
    return None


# Response shaping

def profile_view(obj: Dict[str, Any]) -> Dict[str, Any]:
    fields = object_fields(obj)
    return {
        "objectId": obj.get("objectId"),
        "owner": fields.get("owner"),
        "username": fields.get("username"),
        "bio": fields.get("bio"),
        "image_url": fields.get("image_url"),
        "created_at_ms": fields.get("created_at_ms"),
        "follower_count": int(fields.get("follower_count") or 0),
        "following_count": int(fields.get("following_count") or 0),
    }


def post_view(obj: Dict[str, Any], authors: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    fields = object_fields(obj)
    author = authors.get(fields.get("author_profile_id")) or {}
    return {
        "objectId": obj.get("objectId"),
        "author_profile_id": fields.get("author_profile_id"),
        "author_address": fields.get("author_address"),
        "author_username": author.get("username"),
        "author_image_url": author.get("image_url") or None,
        "content": fields.get("content"),
        "image_url": fields.get("image_url") or None,
        "created_at_ms": fields.get("created_at_ms"),
        "like_count": int(fields.get("like_count") or 0),
        "comment_count": int(fields.get("comment_count") or 0),
    }


def entry_view(obj: Dict[str, Any]) -> Dict[str, Any]:
    """Comments and replies share a layout."""
    fields = object_fields(obj)
    view = {"objectId": obj.get("objectId")}
    view.update({k: v for k, v in fields.items() if k != "id"})
    return view


def with_authors(rpc: SuiRpcClient, posts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    author_ids = list(dict.fromkeys(
        object_fields(p).get("author_profile_id") for p in posts
        if object_fields(p).get("author_profile_id")
    ))
    authors = {
        profile["objectId"]: object_fields(profile)
        for profile in _fetch_many(rpc, author_ids)
    }
    return [post_view(p, authors) for p in posts]


def search(rpc: SuiRpcClient, query: str) -> Dict[str, List[Dict[str, Any]]]:
    needle = query.strip().lower()
    if not needle:
        return {"posts": [], "profiles": []}

    def matches(*values):
        return any(needle in (v or "").lower() for v in values)

    posts = [
        p for p in with_authors(rpc, get_all_posts(rpc))
        if matches(p["content"], p["author_username"], p["author_address"])
    ]

    # events hold the username at creation time, so match on current state
    profile_ids = [parsed["profile_id"] for parsed in list_profile_events(rpc) if parsed.get("profile_id")]
    profiles = [
        view for view in (profile_view(p) for p in _fetch_many(rpc, profile_ids))
        if matches(view["username"], view["owner"])
    ]
    return {"posts": posts, "profiles": profiles}
