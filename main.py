import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import exporter
from auth import create_login, delete_login, get_scope, require_admin
from config import ALLOWED_ORIGINS, LOG_LEVEL, PORT
from database import ensure_indexes, get_db
from filters import DashboardState, FilterSelection, display_name, effective_status, is_unset
from links import call_link, whatsapp_link
from repository import (
    ADMIN_SCOPE,
    ApplicantRepository,
    DuplicateApplicantError,
    NotFound,
    RecruiterRepository,
    RepositoryError,
    Scope,
    get_applicant_repository,
    get_recruiter_repository,
)
from schemas import (
    ApplicantOut,
    ApplicantPage,
    FieldUpdate,
    Kpis,
    RecruiterCreate,
    RecruiterOut,
    RegistrationRequest,
)
from validation import RegistrationError, validate_registration

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

DUPLICATE_MESSAGES = {
    "email": "This email has already been registered",
    "phone": "This phone number has already been registered",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await ensure_indexes(get_db())
    except PyMongoError as e:
        # API still starts; writes fall back to the pre-insert check only
        logger.error("Could not ensure indexes: %s", e)
    yield


app = FastAPI(title="SRM Recruitment Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    return JSONResponse(status_code=422, content={"detail": "Please fix the errors in the form", "errors": exc.errors})


@app.exception_handler(RequestValidationError)
async def intake_validation_handler(request: Request, exc: RequestValidationError):
    # intake answers with the same {field: message} map as RegistrationError
    if request.method != "POST" or request.url.path != "/applicants":
        return await request_validation_exception_handler(request, exc)
    errors = {}
    for err in exc.errors():
        names = [p for p in err.get("loc", ())[1:] if isinstance(p, str)]
        errors.setdefault(names[0] if names else "form", err.get("msg") or "Invalid value")
    return JSONResponse(status_code=422, content={"detail": "Please fix the errors in the form", "errors": errors})


@app.exception_handler(DuplicateApplicantError)
async def duplicate_applicant_handler(request: Request, exc: DuplicateApplicantError):
    return JSONResponse(
        status_code=409,
        content={"detail": "Already registered", "errors": {exc.field: DUPLICATE_MESSAGES[exc.field]}},
    )


@app.get("/")
def read_root():
    return {"message": "SRM Recruitment Backend Running"}


@app.get("/test")
async def test_database():
    status = {"backend": "✅ Running", "database": "❌ Not Available"}
    try:
        db = get_db()
        await db.command("ping")
        status["database"] = "✅ Connected"
        status["database_name"] = db.name
    except PyMongoError as e:
        status["database"] = f"❌ Error: {e}"
    return status


def filter_selection(
    search: Optional[str] = None,
    status: Optional[str] = None,
    city: Optional[str] = None,
    reference: Optional[str] = None,
    day: Optional[date] = Query(None, alias="date"),
) -> FilterSelection:
    return FilterSelection(search=search, status=status, city=city, reference=reference, date=day)


def _row(doc: dict, scope: Scope) -> ApplicantOut:
    sender = None if scope.is_admin else scope.name
    return ApplicantOut.model_validate({
        **doc,
        "fullName": display_name(doc),
        "status": effective_status(doc),
        "callLink": call_link(doc.get("phone")),
        "whatsappLink": whatsapp_link(doc.get("phone"), display_name(doc), sender),
    })


async def _load_state(repo: ApplicantRepository, scope: Scope, selection: FilterSelection) -> DashboardState:
    try:
        records = await repo.load(scope)
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DashboardState(records=records, selection=selection)


# -------- Registration (public landing page) --------
@app.get("/references", response_model=List[str])
async def list_references(recruiters: RecruiterRepository = Depends(get_recruiter_repository)):
    try:
        return await recruiters.reference_labels()
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/applicants", status_code=201, response_model=ApplicantOut, response_model_by_alias=True)
async def register_applicant(
    req: RegistrationRequest,
    repo: ApplicantRepository = Depends(get_applicant_repository),
    recruiters: RecruiterRepository = Depends(get_recruiter_repository),
):
    try:
        known = await recruiters.reference_labels() if req.reference else None
    except RepositoryError:
        raise HTTPException(status_code=503, detail="There was an error submitting your application. Please try again.")
    errors = validate_registration(req, known_references=known)
    if errors:
        raise RegistrationError(errors)

    try:
        reference_id = await recruiters.uid_for_label(req.reference) if req.reference else None
        doc = await repo.register(req, reference_id=reference_id)
    except RepositoryError:
        raise HTTPException(status_code=503, detail="There was an error submitting your application. Please try again.")
    return _row(doc, ADMIN_SCOPE)


# -------- Dashboards (admin / agent / reference) --------
@app.get("/applicants", response_model=ApplicantPage, response_model_by_alias=True)
async def list_applicants(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=500),
    selection: FilterSelection = Depends(filter_selection),
    scope: Scope = Depends(get_scope),
    repo: ApplicantRepository = Depends(get_applicant_repository),
):
    state = await _load_state(repo, scope, selection)
    rows = state.page(page, page_size)
    return {
        "items": [_row(d, scope) for d in rows],
        "count": len(state.visible()),
        "page": page,
        "pageSize": page_size,
        "kpis": state.kpis(),
    }


@app.get("/applicants/kpis", response_model=Kpis, response_model_by_alias=True)
async def applicant_kpis(
    selection: FilterSelection = Depends(filter_selection),
    scope: Scope = Depends(get_scope),
    repo: ApplicantRepository = Depends(get_applicant_repository),
):
    state = await _load_state(repo, scope, selection)
    return state.kpis()


@app.get("/applicants/export")
async def export_applicants(
    fmt: str = Query(exporter.XLSX, alias="format", pattern="^(csv|xlsx)$"),
    selection: FilterSelection = Depends(filter_selection),
    scope: Scope = Depends(get_scope),
    repo: ApplicantRepository = Depends(get_applicant_repository),
):
    state = await _load_state(repo, scope, selection)
    content = exporter.export(state.visible(), scope.role, fmt)
    filename = exporter.export_filename(
        scope.role,
        fmt,
        reference_filter=None if is_unset(selection.reference) else selection.reference.strip(),
        label=scope.label,
        today=datetime.now(timezone.utc).date(),
    )
    return Response(
        content=content,
        media_type=exporter.MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.patch("/applicants/{applicant_id}", response_model=ApplicantOut, response_model_by_alias=True)
async def update_applicant(
    applicant_id: str,
    update: FieldUpdate,
    scope: Scope = Depends(get_scope),
    repo: ApplicantRepository = Depends(get_applicant_repository),
):
    field, value = update.as_pair()
    try:
        doc = await repo.update_field(applicant_id, field, value, scope)
    except NotFound:
        raise HTTPException(status_code=404, detail="Application not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _row(doc, scope)


@app.delete("/applicants/{applicant_id}", status_code=204)
async def delete_applicant(
    applicant_id: str,
    _: Scope = Depends(require_admin),
    repo: ApplicantRepository = Depends(get_applicant_repository),
):
    try:
        await repo.delete(applicant_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Application not found")
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)


# -------- Agents (admin) --------
@app.get("/agents", response_model=List[RecruiterOut], response_model_by_alias=True)
async def list_agents(
    _: Scope = Depends(require_admin),
    recruiters: RecruiterRepository = Depends(get_recruiter_repository),
):
    try:
        return await recruiters.list_agents()
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/agents", status_code=201, response_model=RecruiterOut, response_model_by_alias=True)
async def create_agent(
    req: RecruiterCreate,
    _: Scope = Depends(require_admin),
    recruiters: RecruiterRepository = Depends(get_recruiter_repository),
):
    uid = create_login(req.email, req.password, req.name)
    try:
        return await recruiters.create_agent(req, uid)
    except RepositoryError as e:
        delete_login(uid)
        raise HTTPException(status_code=503, detail=str(e))


@app.delete("/agents/{agent_id}", status_code=204)
async def delete_agent(
    agent_id: str,
    _: Scope = Depends(require_admin),
    recruiters: RecruiterRepository = Depends(get_recruiter_repository),
):
    try:
        agent = await recruiters.delete_agent(agent_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Agent not found")
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    delete_login(agent.get("uid"))
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
