# backend/app/api/routes.py

import csv
import io
from datetime import date, datetime, time
from typing import Annotated, Any, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, StringConstraints, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps_auth import CurrentUser, get_current_user, get_db, require_writer
from app.core.config import settings
from app.core.errors import NotFoundError, StorageError, ValidationError
from app.core.logging_config import get_logger, log_fields
from app.models.movement import ENTRY, MovementRecord as MovementModel
from app.models.product import Product as ProductModel
from app.services import reports
from app.services.alerts import StockAlert, build_stock_alerts
from app.services.movements import (
    INITIAL_STOCK_INVOICE,
    Direction,
    new_movement,
    record_movement,
)
from app.services.paging import Page, PageRequest, SortSpec, fetch_page, order_clauses
from app.services.stock import classify, compute_stock_fields

router = APIRouter()
logger = get_logger("api.routes")

MANUAL_ADJUSTMENT = "Ajuste manual"
SUGGESTION_LIMIT = 5
RECENT_MOVEMENTS_LIMIT = 5

PRODUCT_SORT_FIELDS = ("created_at", "id", "name", "category", "stock")

ActionType = Literal["Entrada", "Salida"]

# surrounding spaces do not count towards the minimum
ShortText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]

# ---------- SCHEMAS ----------


class GaugeOut(BaseModel):
    percentage: float
    tier: str


class Product(BaseModel):
    id: int
    name: str
    category: str
    stock: int
    min_stock: int
    max_stock: int

    # derived: status chip + stock bar
    status: str
    gauge: GaugeOut

    created_at: Optional[datetime] = None


class ProductPage(BaseModel):
    rows: List[Product]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    start_item: int
    end_item: int


class ProductCreate(BaseModel):
    name: ShortText
    category: ShortText
    stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=1, gt=0)
    max_stock: int = Field(default=100, gt=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.max_stock < self.min_stock:
            raise ValueError("max_stock must be greater than or equal to min_stock")
        return self


class ProductUpdate(BaseModel):
    name: Optional[ShortText] = None
    category: Optional[ShortText] = None
    stock: Optional[int] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, gt=0)
    max_stock: Optional[int] = Field(default=None, gt=0)


class HistoryItem(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    action_type: str
    quantity: int
    details: dict[str, Any]
    date: date
    time: time
    user_name: str

    class Config:
        from_attributes = True


class HistoryPage(BaseModel):
    rows: List[HistoryItem]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    start_item: int
    end_item: int


class HistoryMetrics(BaseModel):
    today_movements: int
    total_entries: int
    total_exits: int


class EntryIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    invoice_number: Optional[str] = None


class ExitIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    destination: ShortText


class MovementOut(BaseModel):
    product: Product
    movement: HistoryItem
    state: str


class MonthlyTotal(BaseModel):
    month: str
    total: int


class ProductTotal(BaseModel):
    product_name: str
    total: int


class Dashboard(BaseModel):
    total_products: int
    low_stock_count: int
    out_of_stock_count: int
    total_movements: int
    monthly_entries: List[MonthlyTotal]
    monthly_exits: List[MonthlyTotal]
    top_entries: List[ProductTotal]
    top_exits: List[ProductTotal]


# ---------- HELPERS ----------


def product_out(p: ProductModel) -> Product:
    return Product(
        id=p.id,
        name=p.name,
        category=p.category or "",
        stock=int(p.stock or 0),
        min_stock=p.min_stock,
        max_stock=p.max_stock,
        created_at=p.created_at,
        **compute_stock_fields(p),
    )


def page_out(page: Page, schema, row_fn):
    return schema(
        rows=[row_fn(r) for r in page.rows],
        total_count=page.total_count,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
        start_item=page.start_item,
        end_item=page.end_item,
    )


def get_product_or_404(db: Session, product_id: int) -> ProductModel:
    p = db.get(ProductModel, product_id)
    if not p:
        raise NotFoundError("Product", product_id)
    return p


def commit_or_fail(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("commit_failed", extra=log_fields(operation=what, error=str(e)))
        raise StorageError(f"Could not {what}: {e}") from e


# ---------- ROUTES ----------


@router.get("/ping")
def ping():
    return {"message": "pong"}


# ---------- PRODUCTS (any active account can read) ----------


@router.get("/products", response_model=ProductPage)
def list_products(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort: str = "created_at",
    direction: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    order_by = order_clauses(
        ProductModel,
        SortSpec(sort, direction, tiebreakers=(ProductModel.id.desc(),)),
        PRODUCT_SORT_FIELDS,
    )
    result = fetch_page(
        db.query(ProductModel),
        PageRequest(page, page_size),
        order_by=order_by,
        search=search,
        search_fields=(ProductModel.name, ProductModel.category),
    )
    return page_out(result, ProductPage, product_out)


@router.get("/products/search", response_model=List[Product])
def search_products(
    q: str = "",
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    # too short: no query at all
    if len(q.strip()) < settings.search_min_chars:
        return []

    result = fetch_page(
        db.query(ProductModel),
        PageRequest(1, SUGGESTION_LIMIT),
        order_by=(ProductModel.name.asc(), ProductModel.id.asc()),
        search=q,
        search_fields=(ProductModel.name, ProductModel.category),
    )
    return [product_out(p) for p in result.rows]


@router.get("/products/{product_id}", response_model=Product)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return product_out(get_product_or_404(db, product_id))


@router.get("/products/{product_id}/movements", response_model=List[HistoryItem])
def product_movements(
    product_id: int,
    action_type: Optional[ActionType] = None,
    limit: int = Query(RECENT_MOVEMENTS_LIMIT, ge=1, le=50),
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    get_product_or_404(db, product_id)

    q = db.query(MovementModel).filter(MovementModel.product_id == product_id)
    if action_type is not None:
        q = q.filter(MovementModel.action_type == action_type)

    return q.order_by(MovementModel.id.desc()).limit(limit).all()


# ---------- PRODUCTS (admin/user can write) ----------


@router.post("/products", response_model=Product, status_code=201)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_writer),
):
    p = ProductModel(
        name=payload.name.strip(),
        category=payload.category.strip(),
        stock=payload.stock,
        min_stock=payload.min_stock,
        max_stock=payload.max_stock,
        status=classify(payload.stock, payload.min_stock, payload.max_stock).value,
    )
    db.add(p)

    try:
        db.flush()
        # initial stock is history too
        if payload.stock > 0:
            db.add(
                new_movement(
                    product=p,
                    direction=Direction.IN,
                    quantity=payload.stock,
                    detail=INITIAL_STOCK_INVOICE,
                    acting_user=user.identity,
                    now=datetime.now(),
                )
            )
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Could not create the product: {e}") from e

    commit_or_fail(db, "create the product")
    db.refresh(p)

    logger.info("product_created", extra=log_fields(product_id=p.id, stock=p.stock))
    return product_out(p)


@router.patch("/products/{product_id}", response_model=Product)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_writer),
):
    p = get_product_or_404(db, product_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    min_stock = changes.get("min_stock", p.min_stock)
    max_stock = changes.get("max_stock", p.max_stock)
    if max_stock < min_stock:
        raise ValidationError("max_stock must be greater than or equal to min_stock", field="max_stock")

    prev_stock = int(p.stock or 0)

    for k, v in changes.items():
        setattr(p, k, v.strip() if isinstance(v, str) else v)
    p.status = classify(int(p.stock or 0), p.min_stock, p.max_stock).value

    # a direct stock edit is recorded as an adjustment movement
    delta = int(p.stock or 0) - prev_stock
    if delta:
        db.add(
            new_movement(
                product=p,
                direction=Direction.IN if delta > 0 else Direction.OUT,
                quantity=abs(delta),
                detail=MANUAL_ADJUSTMENT,
                acting_user=user.identity,
                now=datetime.now(),
            )
        )

    commit_or_fail(db, "update the product")
    db.refresh(p)
    return product_out(p)


@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_writer),
):
    p = get_product_or_404(db, product_id)

    # history rows keep their name snapshot and are left alone
    db.delete(p)
    commit_or_fail(db, "delete the product")

    logger.info("product_deleted", extra=log_fields(product_id=product_id))
    return {"ok": True}


# ---------- MOVEMENTS ----------


def movement_out(result) -> MovementOut:
    return MovementOut(
        product=product_out(result.product),
        movement=HistoryItem.model_validate(result.movement),
        state=result.state.value,
    )


@router.post("/movements/entries", response_model=MovementOut, status_code=201)
def register_entry(
    payload: EntryIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_writer),
):
    result = record_movement(
        db,
        payload.product_id,
        Direction.IN,
        payload.quantity,
        detail=payload.invoice_number,
        acting_user=user.identity,
    )
    return movement_out(result)


@router.post("/movements/exits", response_model=MovementOut, status_code=201)
def register_exit(
    payload: ExitIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_writer),
):
    result = record_movement(
        db,
        payload.product_id,
        Direction.OUT,
        payload.quantity,
        detail=payload.destination,
        acting_user=user.identity,
    )
    return movement_out(result)


def history_query(db: Session, action_type: Optional[str]):
    q = db.query(MovementModel)
    if action_type is not None:
        q = q.filter(MovementModel.action_type == action_type)
    return q


@router.get("/movements", response_model=HistoryPage)
def list_movements(
    action_type: Optional[ActionType] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    # newest first by append key
    result = fetch_page(
        history_query(db, action_type),
        PageRequest(page, page_size),
        order_by=(MovementModel.id.desc(),),
        search=search,
        search_fields=(MovementModel.product_name, MovementModel.user_name),
    )
    return page_out(result, HistoryPage, HistoryItem.model_validate)


@router.get("/movements/metrics", response_model=HistoryMetrics)
def movement_metrics(
    action_type: Optional[ActionType] = None,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return reports.history_metrics(db, action_type)


def export_details(m: MovementModel) -> str:
    details = m.details if isinstance(m.details, dict) else {}
    if m.action_type == ENTRY:
        return f"Factura: {details.get('invoice_number') or 'N/A'}"
    return f"Destino: {details.get('destination') or 'N/A'}"


@router.get("/movements.csv")
def export_movements_csv(
    action_type: Optional[ActionType] = None,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    rows = history_query(db, action_type).order_by(MovementModel.id.desc()).all()

    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(["Fecha", "Hora", "Usuario", "Producto", "Acción", "Cantidad", "Detalles"])

    for m in rows:
        w.writerow(
            [
                m.date.isoformat(),
                m.time.isoformat(),
                m.user_name or "N/A",
                m.product_name,
                m.action_type,
                m.quantity,
                export_details(m),
            ]
        )

    filename = (
        "Reporte_Historial_Completo.csv"
        if action_type is None
        else f"Reporte_Historial_{action_type}.csv"
    )

    return StreamingResponse(
        io.BytesIO(buf.getvalue().encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- REPORTS / NOTIFICATIONS ----------


@router.get("/reports/dashboard", response_model=Dashboard)
def dashboard(
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return reports.dashboard(db)


@router.get("/notifications", response_model=List[StockAlert])
def notifications(
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    products = db.query(ProductModel).order_by(ProductModel.id.asc()).all()
    return build_stock_alerts(products)
