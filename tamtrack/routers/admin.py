from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import activity_repo, admin_repo, field_option_repo
from ..security import require_admin
from ..services.mail_service import EmailSender, get_email_sender
from ..services.storage_service import FileStorage, get_file_storage, remove_files

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/dashboard", response_model=schemas.DashboardStats)
def dashboard(
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return admin_repo.dashboard_stats(db)


@router.get("/users", response_model=List[schemas.AdminUserOut])
def list_users(
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return admin_repo.list_users_with_stats(db)


@router.post("/users/{user_id}/grant-models", response_model=schemas.UserOut)
def grant_models(
    user_id: int,
    body: schemas.GrantModels,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return admin_repo.grant_models(db, admin.id, user_id, body)


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    filenames = admin_repo.user_photo_filenames(db, user_id)
    if not admin_repo.delete_user(db, admin.id, user_id):
        raise NotFoundError("User not found", code="user_not_found")
    remove_files(storage, filenames)
    return {"ok": True}


@router.get("/shared-models", response_model=List[schemas.AdminSharedModelOut])
def list_shared_models(
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return admin_repo.list_shared_models(db)


@router.post("/shared-models/{model_id}/unshare", response_model=schemas.ModelOut)
def unshare_model(
    model_id: int,
    body: schemas.UnshareRequest,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
    mailer: EmailSender = Depends(get_email_sender),
):
    model = admin_repo.unshare_model(db, admin.id, model_id, body)
    mailer.send(
        model.owner.email,
        "model_unshared",
        {"model_name": model.name, "reason": body.reason},
    )
    return model


@router.get("/activity-log", response_model=List[schemas.AuditLogOut])
def activity_log(
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return activity_repo.list_audit_log(db)


@router.get("/user-activity", response_model=List[schemas.UserActivityOut])
def user_activity(
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return activity_repo.list_user_activity(db)


@router.get("/field-options", response_model=List[schemas.FieldOptionOut])
def list_field_options(
    field_key: Optional[schemas.FieldKey] = None,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return field_option_repo.list_options(db, field_key)


@router.post(
    "/field-options",
    response_model=schemas.FieldOptionOut,
    status_code=status.HTTP_201_CREATED,
)
def create_field_option(
    body: schemas.FieldOptionCreate,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return field_option_repo.create_option(db, admin.id, body)


@router.put("/field-options/{option_id}", response_model=schemas.FieldOptionOut)
def update_field_option(
    option_id: int,
    body: schemas.FieldOptionUpdate,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return field_option_repo.update_option(db, admin.id, option_id, body)


@router.delete("/field-options/{option_id}")
def delete_field_option(
    option_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    if not field_option_repo.delete_option(db, admin.id, option_id):
        raise NotFoundError("Field option not found", code="field_option_not_found")
    return {"ok": True}


@router.get(
    "/field-options/{option_id}/usage", response_model=schemas.FieldOptionUsage
)
def field_option_usage(
    option_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    count = field_option_repo.usage_count(db, option_id)
    return {"option_id": option_id, "usage_count": count}


@router.post(
    "/field-options/{option_id}/replace", response_model=schemas.FieldOptionReplaced
)
def replace_field_option(
    option_id: int,
    body: schemas.FieldOptionReplace,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    option, updated = field_option_repo.replace_value(db, admin.id, option_id, body)
    return {
        "option": schemas.FieldOptionOut.model_validate(option),
        "updated_rows": updated,
    }
