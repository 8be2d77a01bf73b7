from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List
from datetime import datetime
from PIL import Image, ImageDraw, ImageFont
import io
import logging

from grader.auth.firebase_auth import get_current_user_id
from grader.exams.database import get_certificate_by_public_id, list_user_certificates
from grader.exams.dependencies import get_db
from grader.exams.errors import NotFound
from grader.exams.models import CertificateResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Certificates"])

FONT_DIR = "/usr/share/fonts/truetype/dejavu"


def to_response(cert: dict) -> CertificateResponse:
    return CertificateResponse(
        certificate_id=cert["certificate_id"],
        course_id=cert["course_id"],
        course_name=cert["course_name"],
        instructor_name=cert["instructor_name"],
        issue_date=cert["issue_date"],
        metadata=cert.get("metadata") or {}
    )


# ==================== CERTIFICATE IMAGE GENERATION ====================

def _load_font(name: str, size: int):
    try:
        return ImageFont.truetype(f"{FONT_DIR}/{name}", size)
    except OSError:
        return ImageFont.load_default()


def render_certificate_png(cert: dict) -> bytes:
    width, height = 1920, 1080
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    primary_color   = (41, 128, 185)
    secondary_color = (52, 73, 94)
    gold_color      = (241, 196, 15)
    draw.rectangle([50, 50, width-50, height-50], outline=primary_color, width=10)
    draw.rectangle([70, 70, width-70, height-70], outline=gold_color, width=3)

    title_font    = _load_font("DejaVuSerif-Bold.ttf", 80)
    subtitle_font = _load_font("DejaVuSerif.ttf", 40)
    text_font     = _load_font("DejaVuSans.ttf", 36)
    small_font    = _load_font("DejaVuSans.ttf", 28)

    def centered(text, font, y, fill):
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text(((width - (bbox[2]-bbox[0])) / 2, y), text, fill=fill, font=font)

    issue_date = cert.get("issue_date")
    issued_on = issue_date.strftime('%B %d, %Y') if isinstance(issue_date, datetime) else str(issue_date)
    exam_score = (cert.get("metadata") or {}).get("exam_score")

    centered("CERTIFICATE OF COMPLETION", title_font, 140, primary_color)
    centered("This certifies successful completion of", subtitle_font, 280, secondary_color)
    centered(cert.get("course_name", "Course"), title_font, 360, gold_color)
    if exam_score is not None:
        centered(f"Final exam score: {exam_score:.1f}%", text_font, 500, secondary_color)
    centered(f"Instructor: {cert.get('instructor_name', '')}", text_font, 580, secondary_color)
    centered(f"Issued on: {issued_on}", small_font, 700, secondary_color)
    centered(f"Certificate ID: {cert['certificate_id']}", small_font, 780, secondary_color)
    draw.line([(width//2-200, 900), (width//2+200, 900)], fill=secondary_color, width=2)
    centered((cert.get("metadata") or {}).get("issuer", ""), small_font, 910, secondary_color)

    buf = io.BytesIO()
    img.save(buf, format='PNG')
    buf.seek(0)
    return buf.getvalue()


# ==================== ENDPOINTS ====================

@router.get("", response_model=List[CertificateResponse])
async def get_my_certificates(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    try:
        certificates = await list_user_certificates(db, user_id)
    except Exception as e:
        logger.exception("Certificate listing error")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return [to_response(cert) for cert in certificates]


@router.get("/verify/{certificate_id}")
async def verify_certificate(certificate_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Public check of a certificate id; reveals no user identifiers"""
    try:
        cert = await get_certificate_by_public_id(db, certificate_id)
    except Exception as e:
        logger.exception("Certificate verification error")
        return JSONResponse(status_code=500, content={"error": str(e)})

    if not cert:
        return {"valid": False, "message": "Certificate not found"}
    return {
        "valid": True,
        "certificateId": certificate_id,
        "courseId": cert["course_id"],
        "courseName": cert["course_name"],
        "issueDate": cert["issue_date"].isoformat() if isinstance(cert["issue_date"], datetime) else cert["issue_date"],
        "message": "Certificate is valid"
    }


@router.get("/{certificate_id}/download")
async def download_certificate(
    certificate_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    try:
        cert = await get_certificate_by_public_id(db, certificate_id)
    except Exception as e:
        logger.exception("Certificate download error")
        return JSONResponse(status_code=500, content={"error": str(e)})

    if not cert or cert.get("user_id") != user_id:
        raise NotFound("Certificate not found.")

    certificate_bytes = render_certificate_png(cert)
    return Response(
        content=certificate_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename=certificate_{certificate_id}.png"}
    )
