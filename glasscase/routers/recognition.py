"""Image recognition route."""

from fastapi import APIRouter, Depends, HTTPException

from glasscase.auth import current_user_id
from glasscase.errors import RecognitionError, RecognitionNotConfigured
from glasscase.models.recognition import RecognitionRequest, RecognitionResponse
from glasscase.services import recognition_service

router = APIRouter(prefix="/api/recognition", tags=["recognition"], dependencies=[Depends(current_user_id)])


@router.post("", response_model=RecognitionResponse)
async def recognize(req: RecognitionRequest):
    """Identify the glassware in a photo."""
    try:
        return await recognition_service.recognize(req.image, req.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecognitionNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RecognitionError as e:
        raise HTTPException(status_code=502, detail=f"Failed to process image recognition: {e}")
