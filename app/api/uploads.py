"""
Hookups — Multipart image upload gate.

``ImageUpload`` is a FastAPI dependency that accepts a single file under one
form field, filters it by declared MIME type, writes it to the configured
upload directory and yields the generated filename.
"""

import structlog
from fastapi import Depends, Request
from starlette.datastructures import UploadFile

from app.config import Settings, get_settings
from app.utils.exceptions import HttpException
from app.utils.storage import delete_file, generate_filename, save_upload

logger = structlog.get_logger("hookups.api.uploads")

NOT_AN_IMAGE = "Not an image! Please upload only image files."


class ImageUpload:
    """Accept at most one image file under form field ``field``.

    Only the declared content type is checked; file bytes are not inspected.
    Files under any other form field are rejected.  The dependency returns
    the stored filename, or ``None`` when the request carried no file.
    """

    def __init__(self, field: str = "image", prefix: str = "upload") -> None:
        self.field = field
        self.prefix = prefix

    async def __call__(
        self,
        request: Request,
        settings: Settings = Depends(get_settings),
    ) -> str | None:
        form = await request.form()

        uploads: list[UploadFile] = []
        for key, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue
            if key != self.field:
                raise HttpException("Unexpected field", 400)
            uploads.append(value)

        if not uploads:
            return None
        if len(uploads) > 1:
            raise HttpException("Too many files", 400)

        upload = uploads[0]
        content_type = upload.content_type or ""
        if not content_type.startswith("image"):
            logger.info(
                "upload_rejected",
                field=self.field,
                content_type=content_type,
                filename=upload.filename,
            )
            raise HttpException(NOT_AN_IMAGE, 400)

        filename = generate_filename(self.prefix)
        try:
            await save_upload(upload, settings.HOOKUP_UPLOAD_DIR, filename)
        except OSError:
            delete_file(settings.HOOKUP_UPLOAD_DIR, filename)
            raise
        return filename


upload_hookup_image = ImageUpload(field="image", prefix="hookup")
