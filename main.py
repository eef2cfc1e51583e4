import logging
from datetime import datetime
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Cookie, Depends, FastAPI, Request, Response, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, field_validator

import auth
import config
import conversations
import database
from errors import ChatError
from presence import NEW_MESSAGE_EVENT, PresenceHub
from security import clear_session_cookie, set_session_cookie

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.ensure_indexes()
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

presence_hub = PresenceHub()


# ---------- Errors ----------
@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": "Invalid request data"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error in {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


# ---------- Auth Helpers ----------
class SignupRequest(BaseModel):
    fullName: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("fullName", "email", "password", mode="before")
    @classmethod
    def blank_as_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class UpdateProfileRequest(BaseModel):
    profilePic: Optional[str] = None

class UserOut(BaseModel):
    id: str
    fullName: str
    email: EmailStr
    profilePic: str = ""
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class MessageResponse(BaseModel):
    message: str


def current_user(token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME)) -> dict:
    return auth.verify(token)


@app.get("/")
def read_root():
    return {"message": "Chat API running"}

# ---------- Auth Endpoints ----------
@app.post("/api/auth/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, response: Response):
    user = auth.register(payload.fullName, payload.email, payload.password)
    set_session_cookie(response, user["id"])
    return user


@app.post("/api/auth/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response):
    user = auth.authenticate(payload.email, payload.password)
    set_session_cookie(response, user["id"])
    return user


@app.post("/api/auth/logout", response_model=MessageResponse)
def logout(response: Response):
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@app.put("/api/auth/update-profile", response_model=UserOut)
def update_profile(payload: UpdateProfileRequest, user: dict = Depends(current_user)):
    return auth.update_profile(user["id"], payload.profilePic)


@app.get("/api/auth/check", response_model=UserOut)
def check_auth(user: dict = Depends(current_user)):
    return user


# ---------- Messages ----------
class SendMessageRequest(BaseModel):
    text: Optional[str] = None
    image: Optional[str] = None

class MessageOut(BaseModel):
    id: str
    senderId: str
    receiverId: str
    text: Optional[str] = None
    image: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


@app.get("/api/messages/users", response_model=List[UserOut])
def list_users(user: dict = Depends(current_user)):
    return conversations.list_users_excluding(user["id"])


@app.get("/api/messages/{peer_id}", response_model=List[MessageOut])
def get_messages(peer_id: str, user: dict = Depends(current_user)):
    return conversations.list_messages(user["id"], peer_id)


@app.post("/api/messages/{peer_id}", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(peer_id: str, payload: SendMessageRequest, user: dict = Depends(current_user)):
    message = await run_in_threadpool(
        conversations.send_message, user["id"], peer_id, payload.text, payload.image
    )
    # Push to the receiver if they are online.
    await presence_hub.emit_to_user(peer_id, NEW_MESSAGE_EVENT, jsonable_encoder(message))
    return message


# ---------- Presence ----------
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, userId: Optional[str] = None):
    connection_id = await presence_hub.connect(websocket, userId)
    try:
        while True:
            # Clients only listen; anything they send is ignored.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Transport closed for connection {connection_id}")
    finally:
        await presence_hub.disconnect(connection_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
