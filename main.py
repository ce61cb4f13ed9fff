import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog import CatalogStore
from config import Settings, load_settings
from coupons import CouponLedger
from database import RecordStore, connect
from errors import CouponInvalid, NotFound, OrderingError, Unauthorized, ValidationError
from feedback import FeedbackLedger
from notifications import NotificationLog
from orders import OrderManager
from schemas import (
    AdminVerifyRequest,
    Category,
    CategoryCreate,
    CategoryUpdate,
    Coupon,
    CouponCheckResponse,
    CouponCreate,
    Feedback,
    FeedbackCreate,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    Notification,
    NotifyRequest,
    Order,
    OrderCreate,
    OrderUpdate,
    RestaurantConfig,
    SendOtpRequest,
    SendOtpResponse,
    StatusOverride,
    User,
    UserCreate,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from seed import seed_store
from users import MockIdentityProvider, UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class Services:
    catalog: CatalogStore
    coupons: CouponLedger
    orders: OrderManager
    feedback: FeedbackLedger
    notifications: NotificationLog
    users: UserDirectory
    identity: MockIdentityProvider


def build_services(store: RecordStore, settings: Settings) -> Services:
    catalog = CatalogStore(store)
    coupons = CouponLedger(store)
    users = UserDirectory(store)
    return Services(
        catalog=catalog,
        coupons=coupons,
        orders=OrderManager(
            store,
            catalog,
            coupons,
            addon_surcharge=settings.addon_surcharge,
            tax_rate=settings.tax_rate,
        ),
        feedback=FeedbackLedger(store),
        notifications=NotificationLog(store),
        users=users,
        identity=MockIdentityProvider(users),
    )


# -----------------------------
# Dependencies
# -----------------------------

def get_services(request: Request) -> Services:
    return request.app.state.services


def require_admin(request: Request, x_admin_passcode: Optional[str] = Header(None)) -> None:
    if x_admin_passcode != request.app.state.settings.admin_passcode:
        raise Unauthorized("Invalid admin passcode")


ServicesDep = Annotated[Services, Depends(get_services)]
admin_only = [Depends(require_admin)]

router = APIRouter(prefix="/api")

# -----------------------------
# Catalog Endpoints
# -----------------------------

@router.get("/categories", response_model=List[Category])
def list_categories(services: ServicesDep):
    return services.catalog.list_categories()


@router.get("/categories/{category_id}", response_model=Category)
def get_category(category_id: str, services: ServicesDep):
    return services.catalog.get_category(category_id)


@router.post("/categories", response_model=Category, status_code=201, dependencies=admin_only)
def create_category(payload: CategoryCreate, services: ServicesDep):
    return services.catalog.create_category(payload)


@router.put("/categories/{category_id}", response_model=Category, dependencies=admin_only)
def update_category(category_id: str, payload: CategoryUpdate, services: ServicesDep):
    return services.catalog.update_category(category_id, payload)


@router.delete("/categories/{category_id}", dependencies=admin_only)
def delete_category(category_id: str, services: ServicesDep):
    if not services.catalog.delete_category(category_id):
        raise NotFound(category_id, "Category not found")
    return {"success": True}


@router.get("/menu-items", response_model=List[MenuItem])
def list_menu_items(services: ServicesDep, category: Optional[str] = None):
    return services.catalog.list_menu_items(category_id=category)


@router.get("/menu-items/{item_id}", response_model=MenuItem)
def get_menu_item(item_id: str, services: ServicesDep):
    return services.catalog.get_menu_item(item_id)


@router.post("/menu-items", response_model=MenuItem, status_code=201, dependencies=admin_only)
def create_menu_item(payload: MenuItemCreate, services: ServicesDep):
    return services.catalog.create_menu_item(payload)


@router.put("/menu-items/{item_id}", response_model=MenuItem, dependencies=admin_only)
def update_menu_item(item_id: str, payload: MenuItemUpdate, services: ServicesDep):
    return services.catalog.update_menu_item(item_id, payload)


@router.delete("/menu-items/{item_id}", dependencies=admin_only)
def delete_menu_item(item_id: str, services: ServicesDep):
    if not services.catalog.delete_menu_item(item_id):
        raise NotFound(item_id, "Menu item not found")
    return {"success": True}

# -----------------------------
# Order Endpoints
# -----------------------------

@router.post("/orders", response_model=Order, status_code=201)
def create_order(payload: OrderCreate, services: ServicesDep):
    return services.orders.create_order(
        customer_name=payload.customer_name,
        items=payload.items,
        coupon_code=payload.coupon_number,
        special_instructions=payload.special_instructions,
        payment_method_hint=payload.payment_method,
        user_id=payload.user_id,
    )


@router.get("/orders", response_model=List[Order])
def list_orders(services: ServicesDep, user_id: Optional[str] = Query(None, alias="userId")):
    return services.orders.list_orders(user_id=user_id)


@router.get("/orders/{order_id}", response_model=Order)
def get_order(order_id: str, services: ServicesDep):
    return services.orders.get_order(order_id)


@router.patch("/orders/{order_id}", response_model=Order)
def update_order(order_id: str, payload: OrderUpdate, services: ServicesDep):
    return services.orders.update_order(
        order_id,
        status=payload.status,
        payment_status=payload.payment_status,
        payment_method=payload.payment_method,
    )


@router.get("/orders/{order_id}/feedback", response_model=List[Feedback])
def list_order_feedback(order_id: str, services: ServicesDep):
    return services.feedback.list_order_feedback(order_id)

# -----------------------------
# Feedback & Coupons
# -----------------------------

@router.post("/feedback", response_model=Feedback, status_code=201)
def submit_feedback(payload: FeedbackCreate, services: ServicesDep):
    return services.feedback.submit_feedback(
        customer_name=payload.customer_name,
        rating=payload.rating,
        comment=payload.comment,
        order_id=payload.order_id,
    )


@router.get("/feedback", response_model=List[Feedback])
def list_feedback(services: ServicesDep):
    return services.feedback.list_feedback()


@router.get("/coupons/check/{code}", response_model=CouponCheckResponse)
def check_coupon(code: str, services: ServicesDep):
    try:
        check = services.coupons.check_coupon(code)
    except CouponInvalid:
        raise NotFound(code, "Invalid coupon code")
    return CouponCheckResponse(valid=check.valid, already_used=check.already_used)

# -----------------------------
# Admin
# -----------------------------

@router.post("/admin/verify")
def admin_verify(payload: AdminVerifyRequest, request: Request):
    if payload.passcode != request.app.state.settings.admin_passcode:
        raise Unauthorized("Invalid admin passcode")
    return {"valid": True}


@router.post("/admin/notify", response_model=Notification, status_code=201)
def admin_notify(payload: NotifyRequest, services: ServicesDep):
    return services.notifications.notify(payload.order_id, payload.message)


@router.get("/admin/notifications", response_model=List[Notification], dependencies=admin_only)
def admin_notifications(services: ServicesDep, order_id: Optional[str] = Query(None, alias="orderId")):
    return services.notifications.list_notifications(order_id)


@router.post("/admin/orders/{order_id}/override-status", response_model=Order, dependencies=admin_only)
def admin_override_status(order_id: str, payload: StatusOverride, services: ServicesDep):
    return services.orders.override_status(order_id, payload.status)


@router.get("/admin/coupons", response_model=List[Coupon], dependencies=admin_only)
def admin_list_coupons(services: ServicesDep):
    return services.coupons.list_coupons()


@router.post("/admin/coupons", response_model=Coupon, status_code=201, dependencies=admin_only)
def admin_create_coupon(payload: CouponCreate, services: ServicesDep):
    return services.coupons.create_coupon(payload.code)

# -----------------------------
# Users & mock OTP
# -----------------------------

@router.post("/users", response_model=User, status_code=201)
def create_user(payload: UserCreate, services: ServicesDep):
    return services.users.create_user(payload)


@router.get("/users/{user_id}", response_model=User)
def get_user(user_id: str, services: ServicesDep):
    return services.users.get_user(user_id)


@router.post("/auth/send-otp", response_model=SendOtpResponse)
def send_otp(payload: SendOtpRequest, services: ServicesDep):
    code = services.identity.send_code(payload.phone)
    return SendOtpResponse(success=True, message="OTP sent successfully", otp=code)


@router.post("/auth/verify-otp", response_model=VerifyOtpResponse)
def verify_otp(payload: VerifyOtpRequest, services: ServicesDep):
    user = services.identity.verify_code(payload.phone, payload.otp)
    return VerifyOtpResponse(success=True, user=user)


@router.get("/config", response_model=RestaurantConfig)
def restaurant_config(request: Request):
    settings = request.app.state.settings
    return RestaurantConfig(
        youtube_video_url=settings.youtube_video_url,
        restaurant_name=settings.restaurant_name,
        location=settings.restaurant_location,
        phone=settings.restaurant_phone,
        email=settings.restaurant_email,
    )

# -----------------------------
# Error mapping
# -----------------------------

async def ordering_error_handler(request: Request, exc: OrderingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [
        {
            "field": ".".join(str(p) for p in err["loc"] if p != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=ValidationError.for_fields(fields).to_dict())

# -----------------------------
# Application
# -----------------------------

def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    settings = settings or load_settings()
    store = store or connect(settings.database_url, settings.database_name)
    if settings.seed_data:
        seed_store(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Taste of Pi API with %s store", store.name)
        yield
        logger.info("Shutting down, closing %s store", store.name)
        store.close()

    app = FastAPI(title="Taste of Pi Ordering API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.services = build_services(store, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # -----------------------------
    # Health/Test
    # -----------------------------

    @app.get("/")
    def root():
        return {"message": "Taste of Pi API running"}

    @app.get("/test")
    def test_database():
        response = {
            "backend": "✅ Running",
            "store": store.name,
            "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
            "database_name": "✅ Set" if settings.database_name else "❌ Not Set",
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            response["collections"] = store.list_collection_names()
            response["connection_status"] = "Connected"
        except Exception as e:
            logger.warning("Store diagnostics failed: %s", e)
            response["connection_status"] = f"⚠️ Error: {str(e)[:80]}"
        return response

    app.include_router(router)
    return app


_settings = load_settings()
logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", _settings.port))
    uvicorn.run(app, host="0.0.0.0", port=port)
