from fastapi import FastAPI, APIRouter, HTTPException, Depends, File, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime, timezone, timedelta
import logging
import jwt

import config
import queries
from queries import ObjectNotFound
from sponsor import Sponsor, SponsorError, TransactionFailed
from sui_rpc import SuiRpcClient, SuiRpcError, fullnode_url
from tx_builder import MoveCall, TransactionBuilder
from walrus_storage import WalrusError, WalrusStorage
from zklogin import (
    EnokiClient,
    EnokiError,
    ZkLoginError,
    ZkLoginSession,
    ZkLoginTransactionService,
    authorization_url,
    begin_login,
    complete_login,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Sui connection
rpc_client = SuiRpcClient(config.SUI_RPC_URL or fullnode_url(config.SUI_NETWORK), timeout=config.RPC_TIMEOUT)
storage = WalrusStorage()
enoki_client = EnokiClient()
logger.info("Sui client initialized for %s", config.SUI_NETWORK)
for problem in config.validate_zklogin_config():
    logger.warning(problem)

# Create the main app without a prefix
app = FastAPI(title="Suitter API")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")

# Security
security = HTTPBearer(auto_error=False)


# Request models
class RegisterProfileRequest(BaseModel):
    username: str
    bio: str = ""
    image_url_str: str = ""
    user_address: str

class CreatePostRequest(BaseModel):
    content: str
    image_url_str: Optional[str] = None

class LikePostRequest(BaseModel):
    post_id: str

class UnlikePostRequest(BaseModel):
    like_id: str
    post_id: str

class DeletePostRequest(BaseModel):
    post_id: str

class UpdateProfileRequest(BaseModel):
    new_username: str
    new_bio: str = ""
    new_image_url_str: str = ""

class FollowUserRequest(BaseModel):
    profile_to_follow_id: str

class UnfollowUserRequest(BaseModel):
    follow_id: str
    profile_to_unfollow_id: str

class CreateCommentRequest(BaseModel):
    content: str

class UploadFromUrlRequest(BaseModel):
    url: str

class ZkLoginCompleteRequest(BaseModel):
    session: ZkLoginSession
    id_token: str

class ZkLoginExecuteRequest(BaseModel):
    session: ZkLoginSession
    function: str
    arguments: Dict[str, Any] = {}


# Response models
class TransactionData(BaseModel):
    digest: str
    effects: Optional[Any] = None
    objectChanges: Optional[Any] = None

class SuiTransactionResponse(BaseModel):
    success: bool
    message: str
    data: Optional[TransactionData] = None

class HealthCheckResponse(BaseModel):
    status: str
    network: str
    sponsorAddress: str
    sponsorBalance: Optional[str] = None
    timestamp: datetime

class MediaResponse(BaseModel):
    blobId: str
    url: str

class ZkLoginBeginResponse(BaseModel):
    session: ZkLoginSession
    authorizationUrl: str

class ZkLoginCompleteResponse(BaseModel):
    session: ZkLoginSession
    address: str
    accessToken: str
    tokenType: str = "bearer"


# Dependencies
def get_rpc() -> SuiRpcClient:
    return rpc_client

def get_storage() -> WalrusStorage:
    return storage

def get_enoki() -> EnokiClient:
    return enoki_client

def get_sponsor(rpc: SuiRpcClient = Depends(get_rpc)) -> Sponsor:
    return Sponsor.from_secret_key(rpc, config.SPONSOR_PRIVATE_KEY)

async def get_current_address(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if not config.JWT_SECRET:
        raise HTTPException(status_code=503, detail="JWT_SECRET is not configured")

    try:
        payload = jwt.decode(credentials.credentials, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    address = payload.get("address") or payload.get("sub") or payload.get("email")
    if not address:
        raise HTTPException(status_code=401, detail="Token carries no user address")
    return address

def own_profile_id(rpc: SuiRpcClient, address: str) -> str:
    profile = queries.find_profile_by_address(rpc, address)
    if not profile:
        raise HTTPException(status_code=404, detail=f"No profile registered for {address}")
    return profile["objectId"]

def run(sponsor: Sponsor, move_call: MoveCall, message: str) -> SuiTransactionResponse:
    return transaction_response(sponsor.execute(move_call), message)

def transaction_response(result: Dict[str, Any], message: str) -> SuiTransactionResponse:
    return SuiTransactionResponse(
        success=True,
        message=message,
        data=TransactionData(
            digest=result["digest"],
            effects=result.get("effects"),
            objectChanges=result.get("objectChanges"),
        ),
    )


# Error handlers
@app.exception_handler(ObjectNotFound)
async def object_not_found_handler(request: Request, exc: ObjectNotFound):
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})

@app.exception_handler(SuiRpcError)
async def sui_rpc_error_handler(request: Request, exc: SuiRpcError):
    logger.error("Sui RPC failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": "sui_rpc_error", "message": str(exc)})

@app.exception_handler(TransactionFailed)
async def transaction_failed_handler(request: Request, exc: TransactionFailed):
    return JSONResponse(
        status_code=400,
        content={"error": "transaction_failed", "message": str(exc), "details": {"digest": exc.digest}},
    )

@app.exception_handler(SponsorError)
async def sponsor_error_handler(request: Request, exc: SponsorError):
    return JSONResponse(status_code=503, content={"error": "sponsor_unavailable", "message": str(exc)})

@app.exception_handler(WalrusError)
async def walrus_error_handler(request: Request, exc: WalrusError):
    logger.error("Walrus failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": "walrus_error", "message": str(exc)})

@app.exception_handler(EnokiError)
async def enoki_error_handler(request: Request, exc: EnokiError):
    logger.error("Enoki failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": "enoki_error", "message": str(exc)})

@app.exception_handler(ZkLoginError)
async def zklogin_error_handler(request: Request, exc: ZkLoginError):
    return JSONResponse(status_code=400, content={"error": "zklogin_error", "message": str(exc)})


# Health check
@api_router.get("/health", response_model=HealthCheckResponse)
def health(rpc: SuiRpcClient = Depends(get_rpc)):
    status, address, balance = "healthy", "", None
    try:
        sponsor = Sponsor.from_secret_key(rpc, config.SPONSOR_PRIVATE_KEY)
        address = sponsor.address
        balance = str(sponsor.balance())
    except (SponsorError, SuiRpcError) as e:
        logger.warning("Health check degraded: %s", e)
        status = "unhealthy"

    return HealthCheckResponse(
        status=status,
        network=config.SUI_NETWORK,
        sponsorAddress=address,
        sponsorBalance=balance,
        timestamp=datetime.now(timezone.utc),
    )


# Post routes
@api_router.get("/posts")
def list_posts(
    limit: int = Query(queries.POSTS_LIMIT, ge=1, le=queries.POSTS_LIMIT),
    rpc: SuiRpcClient = Depends(get_rpc),
):
    posts = queries.get_all_posts(rpc, limit=limit)
    return {"success": True, "data": queries.with_authors(rpc, posts)}

@api_router.get("/posts/{post_id}")
def get_post(post_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    post = queries.get_post(rpc, post_id)
    return {"success": True, "data": queries.with_authors(rpc, [post])[0]}

@api_router.post("/posts", response_model=SuiTransactionResponse)
def create_post(
    request: CreatePostRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Post content cannot be empty")
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.create_post(profile_id, address, request.content, request.image_url_str or "")
    return run(sponsor, move_call, "Post created successfully")

@api_router.post("/posts/like", response_model=SuiTransactionResponse)
def like_post(
    request: LikePostRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    return run(sponsor, TransactionBuilder.like_post(profile_id, request.post_id), "Post liked successfully")

@api_router.post("/posts/unlike", response_model=SuiTransactionResponse)
def unlike_post(
    request: UnlikePostRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.unlike_post(request.like_id, profile_id, request.post_id)
    return run(sponsor, move_call, "Post unliked successfully")

@api_router.post("/posts/delete", response_model=SuiTransactionResponse)
def delete_post(
    request: DeletePostRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    return run(sponsor, TransactionBuilder.delete_post(request.post_id, profile_id), "Post deleted successfully")


# Comment routes
@api_router.get("/posts/{post_id}/comments")
def get_post_comments(post_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    comments = queries.get_post_comments(rpc, post_id)
    return {"success": True, "data": [queries.entry_view(c) for c in comments]}

@api_router.post("/posts/{post_id}/comments", response_model=SuiTransactionResponse)
def create_comment(
    post_id: str,
    request: CreateCommentRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Comment cannot be empty")
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.create_comment(post_id, profile_id, request.content)
    return run(sponsor, move_call, "Comment created successfully")

@api_router.get("/comments/{comment_id}")
def get_comment(comment_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.entry_view(queries.get_comment(rpc, comment_id))}

@api_router.get("/comments/{comment_id}/replies")
def get_comment_replies(comment_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    replies = queries.get_comment_replies(rpc, comment_id)
    return {"success": True, "data": [queries.entry_view(r) for r in replies]}

@api_router.post("/comments/{comment_id}/replies", response_model=SuiTransactionResponse)
def create_reply(
    comment_id: str,
    request: CreateCommentRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Reply cannot be empty")
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.create_reply(comment_id, profile_id, request.content)
    return run(sponsor, move_call, "Reply created successfully")

@api_router.get("/replies/{reply_id}")
def get_reply(reply_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.entry_view(queries.get_reply(rpc, reply_id))}


# Profile routes
@api_router.post("/profile/register", response_model=SuiTransactionResponse)
def register_profile(
    request: RegisterProfileRequest,
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    if not request.username.strip():
        raise HTTPException(status_code=400, detail="Username is required")
    if not queries.check_username_availability(rpc, request.username):
        raise HTTPException(status_code=409, detail=f"Username '{request.username}' is not available")

    move_call = TransactionBuilder.create_profile(
        request.user_address, request.username, request.bio, request.image_url_str
    )
    response = run(sponsor, move_call, "Profile registered successfully")

    # the profile exists either way; a failed airdrop only means an unfunded wallet
    try:
        sponsor.airdrop(request.user_address)
    except (SponsorError, SuiRpcError):
        logger.exception("Airdrop to %s failed", request.user_address)
        response.message = "Profile registered, but funding the wallet failed"
    return response

@api_router.put("/profile", response_model=SuiTransactionResponse)
def update_profile(
    request: UpdateProfileRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.update_profile(
        profile_id, request.new_username, request.new_bio, request.new_image_url_str
    )
    return run(sponsor, move_call, "Profile updated successfully")

@api_router.delete("/profile", response_model=SuiTransactionResponse)
def delete_profile(
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    return run(sponsor, TransactionBuilder.delete_profile(profile_id), "Profile deleted successfully")

@api_router.get("/profiles/address/{address}")
def get_profile_by_address(address: str, rpc: SuiRpcClient = Depends(get_rpc)):
    profile = queries.find_profile_by_address(rpc, address)
    if not profile:
        raise HTTPException(status_code=404, detail=f"No profile registered for {address}")
    return {"success": True, "data": queries.profile_view(profile)}

@api_router.get("/profiles/{profile_id}")
def get_profile(profile_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.profile_view(queries.get_profile(rpc, profile_id))}

@api_router.get("/profiles/{profile_id}/likes")
def get_user_likes(profile_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.get_user_likes(rpc, profile_id)}

@api_router.get("/profiles/{profile_id}/like-objects")
def get_user_like_objects(profile_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.get_user_like_objects(rpc, profile_id)}

@api_router.get("/username/{username}/available")
def username_available(username: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"username": username, "available": queries.check_username_availability(rpc, username)}


# Follow routes
@api_router.post("/follow", response_model=SuiTransactionResponse)
def follow_user(
    request: FollowUserRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    if profile_id == request.profile_to_follow_id:
        raise HTTPException(status_code=400, detail="Cannot follow yourself")
    move_call = TransactionBuilder.follow(profile_id, request.profile_to_follow_id)
    return run(sponsor, move_call, "Followed successfully")

@api_router.post("/unfollow", response_model=SuiTransactionResponse)
def unfollow_user(
    request: UnfollowUserRequest,
    address: str = Depends(get_current_address),
    rpc: SuiRpcClient = Depends(get_rpc),
    sponsor: Sponsor = Depends(get_sponsor),
):
    profile_id = own_profile_id(rpc, address)
    move_call = TransactionBuilder.unfollow(request.follow_id, profile_id, request.profile_to_unfollow_id)
    return run(sponsor, move_call, "Unfollowed successfully")


# Misc routes
@api_router.get("/objects/{object_id}")
def get_object(object_id: str, rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.get_object(rpc, object_id)}

@api_router.get("/search")
def search(q: str = "", rpc: SuiRpcClient = Depends(get_rpc)):
    return {"success": True, "data": queries.search(rpc, q)}


# zkLogin routes
USER_TRANSACTIONS = frozenset({
    "create_profile", "create_post", "update_profile", "like_post", "unlike_post",
    "follow", "unfollow", "delete_post", "delete_profile", "create_comment", "create_reply",
})

def issue_access_token(address: str) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRATION_DAYS)
    return jwt.encode({"address": address, "exp": expires}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

@api_router.post("/zklogin/begin", response_model=ZkLoginBeginResponse)
def zklogin_begin(enoki: EnokiClient = Depends(get_enoki)):
    problems = config.validate_zklogin_config()
    if problems:
        raise HTTPException(status_code=503, detail="; ".join(problems))
    session = begin_login(enoki)
    url = authorization_url(session, client_id=config.GOOGLE_CLIENT_ID, redirect_uri=config.REDIRECT_URI)
    return ZkLoginBeginResponse(session=session, authorizationUrl=url)

@api_router.post("/zklogin/complete", response_model=ZkLoginCompleteResponse)
def zklogin_complete(request: ZkLoginCompleteRequest, enoki: EnokiClient = Depends(get_enoki)):
    if not config.JWT_SECRET:
        raise HTTPException(status_code=503, detail="JWT_SECRET is not configured")
    session = complete_login(enoki, request.session, request.id_token)
    logger.info("zkLogin completed for %s", session.user_address)
    return ZkLoginCompleteResponse(
        session=session,
        address=session.user_address,
        accessToken=issue_access_token(session.user_address),
    )

@api_router.post("/zklogin/execute", response_model=SuiTransactionResponse)
def zklogin_execute(request: ZkLoginExecuteRequest, rpc: SuiRpcClient = Depends(get_rpc)):
    """Run a suitter call signed by the session's ephemeral key; the user pays gas."""
    if request.function not in USER_TRANSACTIONS:
        raise HTTPException(status_code=400, detail=f"Unknown transaction '{request.function}'")
    try:
        move_call = getattr(TransactionBuilder, request.function)(**request.arguments)
    except TypeError as e:
        raise HTTPException(status_code=400, detail=f"Bad arguments for {request.function}: {e}")
    result = ZkLoginTransactionService(rpc).execute_transaction(move_call, request.session)
    return transaction_response(result, "Transaction executed successfully")


# Media routes
@api_router.post("/media", response_model=MediaResponse)
async def upload_media(file: UploadFile = File(...), store: WalrusStorage = Depends(get_storage)):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    blob_id = await run_in_threadpool(store.upload_bytes, data)
    return MediaResponse(blobId=blob_id, url=store.blob_url(blob_id))

@api_router.post("/media/url", response_model=MediaResponse)
def upload_media_from_url(request: UploadFromUrlRequest, store: WalrusStorage = Depends(get_storage)):
    blob_id = store.upload_from_url(request.url)
    return MediaResponse(blobId=blob_id, url=store.blob_url(blob_id))

@api_router.get("/media/{blob_id}")
def get_media(blob_id: str, store: WalrusStorage = Depends(get_storage)):
    return Response(content=store.get_blob(blob_id), media_type="application/octet-stream")


@api_router.get("/")
async def root():
    return {"message": "Suitter API is running"}

# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("shutdown")
async def shutdown_clients():
    rpc_client.close()
    storage.session.close()
    enoki_client.session.close()
