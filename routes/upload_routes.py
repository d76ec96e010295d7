from fastapi import APIRouter, Depends, File, UploadFile, status
from core.dependencies import get_current_user, CurrentUser
from services.upload_service import save_upload
from utils.logger import get_logger

logger = get_logger("Upload_Route")
router = APIRouter(tags=["Uploads"])

@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def api_upload(file: UploadFile = File(...), current_user: CurrentUser = Depends(get_current_user)):
    logger.info(f"Upload from {current_user.email}: {file.filename} ({file.content_type})")
    return await save_upload(file)
