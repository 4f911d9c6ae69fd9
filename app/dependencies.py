import os
import json
import logging
from dotenv import load_dotenv
from typing import Optional, Dict, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, Header, HTTPException
from firebase_admin import credentials, initialize_app, get_app, _apps, auth, firestore as admin_firestore
from google.cloud import secretmanager
from google.api_core import exceptions as gapi_exceptions

from app.config import settings
from app.services.firestore_service import FirestoreService
from app.services.itinerary_store import FirestoreItineraryStore
load_dotenv()
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


SERVICE_ACCOUNT_SECRET = os.getenv("SERVICE_ACCOUNT_SECRET")  # e.g. projects/PROJECT_ID/secrets/SA_KEY/versions/latest
GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or settings.service_account_key_path
PROJECT_ID = os.getenv("PROJECT_ID") or settings.project_id
DATABASE = os.getenv("DATABASE", settings.database)

def _access_secret_from_sm(resource_name: str) -> str:
    """
    Given a full Secret Manager resource name (projects/.../secrets/.../versions/...),
    retrieve the secret payload (string).
    """
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": resource_name})
        return response.payload.data.decode("UTF-8")
    except gapi_exceptions.GoogleAPIError as e:
        logger.exception("Unable to access secret %s: %s", resource_name, e)
        raise


def _init_firebase(cred=None):
    """
    Initialize firebase_admin once. Passing no credential uses
    Application Default Credentials (Cloud Run service account).
    """
    if _apps:
        return get_app()

    app = initialize_app(cred) if cred is not None else initialize_app()
    logger.info("Initialized firebase_admin (%s)", "explicit credential" if cred is not None else "ADC")
    return app


def init_firebase_admin():
    """
    Initialize firebase_admin and return Firestore client.
    Order of preference:
      1) SERVICE_ACCOUNT_SECRET env var -> fetch JSON from Secret Manager
      2) GOOGLE_APPLICATION_CREDENTIALS / SERVICE_ACCOUNT_KEY_PATH -> local file path (dev)
      3) ADC (Cloud Run) -> initialize_app() without args
    """
    if _apps:
        return admin_firestore.client(database_id=DATABASE)

    # 1) Secret Manager
    if SERVICE_ACCOUNT_SECRET:
        secret_res_name = SERVICE_ACCOUNT_SECRET
        # support shorthand secret ID (e.g., "SA_KEY") by turning it into a resource name if project id provided
        if not secret_res_name.startswith("projects/") and PROJECT_ID:
            secret_res_name = f"projects/{PROJECT_ID}/secrets/{SERVICE_ACCOUNT_SECRET}/versions/latest"
        logger.info("Loading service account from Secret Manager: %s", secret_res_name)
        sa_dict = json.loads(_access_secret_from_sm(secret_res_name))
        _init_firebase(credentials.Certificate(sa_dict))
        return admin_firestore.client(database_id=DATABASE)

    # 2) Local key file (dev)
    if GOOGLE_APPLICATION_CREDENTIALS and os.path.exists(GOOGLE_APPLICATION_CREDENTIALS):
        logger.info("Loading service account from path: %s", GOOGLE_APPLICATION_CREDENTIALS)
        _init_firebase(credentials.Certificate(GOOGLE_APPLICATION_CREDENTIALS))
        return admin_firestore.client(database_id=DATABASE)

    # 3) ADC (Cloud Run)
    logger.info("No explicit service account provided, attempting Application Default Credentials (ADC)")
    _init_firebase()
    return admin_firestore.client(database_id=DATABASE)


# Lazily initialize a single global Firestore client to reuse across requests
_db_client = None


def get_firestore_client():
    global _db_client
    if _db_client is None:
        _db_client = init_firebase_admin()
    return _db_client


# ---------------------------
# FastAPI dependencies
# ---------------------------
def _extract_bearer_token(authorization_header: Optional[str]) -> str:
    if not authorization_header:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]


def verify_id_token(token: str):
    """
    Verify Firebase ID token and return decoded token dict (contains uid, claims).
    Raises HTTPException(401) on failure.
    """
    try:
        return auth.verify_id_token(token)
    except Exception as e:
        logger.exception("Invalid Firebase ID token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired ID token")


async def verify_id_token_dependency(authorization: Optional[str] = Header(None)):
    """
    FastAPI dependency that checks Authorization header and verifies the ID token.
    Returns decoded token (a dict). Use it as a parameter:
        def endpoint(decoded_token = Depends(verify_id_token_dependency)):
            uid = get_current_uid(decoded_token)
    """
    token = _extract_bearer_token(authorization)
    return verify_id_token(token)


def get_current_uid(decoded_token: Dict[str, Any]):
    """
    Helper to extract uid from decoded token.
    """
    uid = decoded_token.get("uid")
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid UID in token")
    return uid


async def get_viewer_timezone(x_timezone: Optional[str] = Header(None)) -> ZoneInfo:
    """Timezone used to bucket timestamps into local calendar days."""
    name = x_timezone or settings.default_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=400, detail=f"Unknown timezone: {name}")


def get_firestore_service() -> FirestoreService:
    """Dependency to get FirestoreService instance"""
    return FirestoreService(get_firestore_client())


def get_itinerary_store(fs: FirestoreService = Depends(get_firestore_service)) -> FirestoreItineraryStore:
    return FirestoreItineraryStore(fs)


async def get_current_user_uid(decoded_token: Dict[str, Any] = Depends(verify_id_token_dependency)) -> str:
    return get_current_uid(decoded_token)
