# main.py

# --- Standard Library Imports ---
import logging
from typing import List, Optional

# --- Third-Party Imports ---
import uvicorn
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile, staticfiles
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Local Application Imports ---
from attachments import AttachmentStore
from config import (
    ATTACHMENT_POLICIES,
    CORS_ALLOW_ORIGINS,
    GALLERY_MAX_FILES,
    MONGODB_COLLECTION,
    MONGODB_DB,
    MONGODB_URI,
    UPLOAD_BASE_DIR,
    UPLOAD_URL_PREFIX,
    configure_logging,
)
from db import ensure_indexes, get_db_client
from errors import ProfileError, StorageFailure, ValidationError
from service import ProfileService
from utils import ensure_dir

# ----------------------------- App Configuration -----------------------------
configure_logging()
logger = logging.getLogger(__name__)

ensure_dir(UPLOAD_BASE_DIR)

app = FastAPI(title="Employee Directory API")

app.mount(f"/{UPLOAD_URL_PREFIX}", staticfiles.StaticFiles(directory=UPLOAD_BASE_DIR), name="uploads")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------- DB Lifecycle Events -----------------------------
@app.on_event("startup")
async def _startup():
    """Connects to MongoDB, ensures the email index and wires the profile service."""
    app.state.client = get_db_client(MONGODB_URI)
    collection = app.state.client[MONGODB_DB][MONGODB_COLLECTION]
    await ensure_indexes(collection)
    attachments = AttachmentStore(UPLOAD_BASE_DIR, ATTACHMENT_POLICIES, url_prefix=UPLOAD_URL_PREFIX)
    app.state.profile_service = ProfileService(collection, attachments, gallery_max_files=GALLERY_MAX_FILES)
    logger.info("Connected to %s/%s.%s", MONGODB_URI, MONGODB_DB, MONGODB_COLLECTION)

@app.on_event("shutdown")
async def _shutdown():
    """Closes the database connection gracefully."""
    if getattr(app.state, "client", None):
        app.state.client.close()

def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service

# ----------------------------- Error Handlers -----------------------------
@app.exception_handler(ProfileError)
async def _profile_error(request: Request, exc: ProfileError):
    if isinstance(exc, StorageFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": "Server Error"})
    content = {"success": False, "message": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(RequestValidationError)
async def _request_error(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.setdefault(loc[0] if loc else "request", err.get("msg", "Invalid value"))
    return JSONResponse(status_code=400, content={"success": False, "message": "Invalid input", "errors": errors})

@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Server Error"})

# ----------------------------- Health Check Endpoint -----------------------------
@app.get("/healthz")
def health_check():
    """A simple endpoint to confirm the API is running."""
    return {"status": "ok"}

# ----------------------------- API Endpoints -----------------------------
@app.get("/profiles")
async def list_profiles(service: ProfileService = Depends(get_profile_service)):
    profiles = await service.list_profiles()
    return {"success": True, "message": f"{len(profiles)} profiles", "data": profiles}

@app.get("/profiles/{profile_id}")
async def get_profile(profile_id: str, service: ProfileService = Depends(get_profile_service)):
    profile = await service.get_profile(profile_id)
    return {"success": True, "message": "Profile found", "data": profile}

@app.post("/profiles", status_code=201)
async def create_profile(
    fullName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    dob: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    skills: Optional[List[str]] = Form(None),
    department: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    isActive: Optional[str] = Form(None),
    resume: Optional[UploadFile] = File(None),
    profileImage: Optional[UploadFile] = File(None),
    galleryImages: Optional[List[UploadFile]] = File(None),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Creates a profile from a multipart form. Resume and profile image are
    required, gallery images are optional.
    """
    form = {
        "fullName": fullName,
        "email": email,
        "phone": phone,
        "dob": dob,
        "gender": gender,
        "skills": skills,
        "department": department,
        "address": address,
        "isActive": isActive,
    }
    profile = await service.create_profile(form, resume, profileImage, galleryImages)
    return {"success": True, "message": "Profile created successfully", "data": profile}

@app.put("/profiles/{profile_id}")
async def update_profile(
    profile_id: str,
    fullName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    dob: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    skills: Optional[List[str]] = Form(None),
    department: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    isActive: Optional[str] = Form(None),
    existingGalleryImages: Optional[List[str]] = Form(None),
    resume: Optional[UploadFile] = File(None),
    profileImage: Optional[UploadFile] = File(None),
    galleryImages: Optional[List[UploadFile]] = File(None),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Updates a profile. Omitted fields and attachments are kept;
    `existingGalleryImages` lists the gallery references to keep.
    """
    form = {
        "fullName": fullName,
        "email": email,
        "phone": phone,
        "dob": dob,
        "gender": gender,
        "skills": skills,
        "department": department,
        "address": address,
        "isActive": isActive,
    }
    profile = await service.update_profile(
        profile_id, form, resume, profileImage, galleryImages, existingGalleryImages
    )
    return {"success": True, "message": "Profile updated successfully", "data": profile}

@app.delete("/profiles/{profile_id}")
async def delete_profile(profile_id: str, service: ProfileService = Depends(get_profile_service)):
    profile = await service.delete_profile(profile_id)
    return {"success": True, "message": "Profile deleted successfully", "data": profile}

# ----------------------------- Script Entry Point -----------------------------
if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
