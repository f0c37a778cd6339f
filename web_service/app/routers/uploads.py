# web_service/app/routers/uploads.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.dependencies import redirect, render, require_user
from web_service.app.schemas import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload")


@router.get("")
async def upload_page(request: Request, user: CurrentUser = Depends(require_user)):
    return render(request, "upload.html", {"form": {}})


@router.post("")
async def upload_action(
    request: Request,
    proof_of_payment: Optional[UploadFile] = File(None),
    order_id: str = Form(""),
    customer_name: str = Form(""),
    user: CurrentUser = Depends(require_user),
    api: FunctionsApiClient = Depends(get_api_client),
):
    form = {"order_id": order_id, "customer_name": customer_name}
    content = await proof_of_payment.read() if proof_of_payment is not None and proof_of_payment.filename else b""
    if not content:
        return render(request, "upload.html", {"form": form, "error": "Please select a file to upload."})

    try:
        file_name = await api.upload_proof_of_payment(
            proof_of_payment.filename, content, proof_of_payment.content_type,
            order_id=order_id.strip() or None, customer_name=customer_name.strip() or None,
        )
    except ApiError as e:
        return render(request, "upload.html", {"form": form, "error": f"Error uploading file: {e.message}"})

    logger.info("%s uploaded proof of payment %s", user.username, file_name)
    return redirect("/upload", f"File uploaded successfully! File name: {file_name}")
