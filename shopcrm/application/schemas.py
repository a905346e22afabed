from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, StringConstraints
from datetime import datetime, date
from decimal import Decimal
from typing import Annotated, Generic, Literal, Optional, TypeVar

from shopcrm.domain.order_status import OrderStatus

T = TypeVar("T")

class Page(BaseModel, Generic[T]):
    data: list[T]
    page: int
    total_pages: int
    total: int

Money = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
# Money on the way out: Decimal in Python, a JSON number on the wire
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
Stripped = Annotated[str, StringConstraints(strip_whitespace=True)]
CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]

#############################
# Auth                      #
#############################

class TokenRequest(BaseModel):
    email: str
    password: str
    user_type: Literal["customer", "admin"] = "customer"

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    address: Optional[str] = None

#############################
# Customers                 #
#############################

class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)

class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = None

class CustomerRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    is_archived: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CustomerSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

#############################
# Catalog                   #
#############################

class CategoryCreate(BaseModel):
    name: CategoryName
    description: Optional[str] = None
    category_type: Literal["PHYSICAL", "DIGITAL", "COURSE"] = "PHYSICAL"
    sort_order: int = 0

class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None
    description: Optional[str] = None
    category_type: Optional[Literal["PHYSICAL", "DIGITAL", "COURSE"]] = None
    sort_order: Optional[int] = None

class CategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category_type: str
    sort_order: int

    model_config = ConfigDict(from_attributes=True)

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Money
    stock: int = Field(default=0, ge=0)
    image_url: Optional[str] = None
    is_active: bool = True
    category_id: Optional[int] = None

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Money] = None
    stock: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    category_id: Optional[int] = None

class ProductRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Amount
    stock: int
    image_url: Optional[str] = None
    is_active: bool
    category_id: Optional[int] = None
    category: Optional[CategoryRead] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ProductSummary(BaseModel):
    id: int
    name: str
    image_url: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class ShippingRateCreate(BaseModel):
    category_id: Optional[int] = None
    shipping_fee: Money
    free_shipping_threshold: Optional[Money] = None
    is_active: bool = True

class ShippingRateUpdate(BaseModel):
    shipping_fee: Optional[Money] = None
    free_shipping_threshold: Optional[Money] = None
    is_active: Optional[bool] = None

class ShippingRateRead(BaseModel):
    id: int
    category_id: Optional[int] = None
    shipping_fee: Amount
    free_shipping_threshold: Optional[Amount] = None
    is_active: bool
    category: Optional[CategoryRead] = None

    model_config = ConfigDict(from_attributes=True)

#############################
# Shipping quote            #
#############################

class QuoteItem(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)

class QuoteRequest(BaseModel):
    items: list[QuoteItem] = []

class GroupShippingRead(BaseModel):
    category_id: Optional[int] = None
    subtotal: Amount
    shipping_fee: Amount
    free_shipping: bool
    free_shipping_threshold: Optional[Amount] = None

    model_config = ConfigDict(from_attributes=True)

class ShippingQuoteRead(BaseModel):
    subtotal_amount: Amount
    shipping_fee: Amount
    total_amount: Amount
    free_shipping_applied: bool
    groups: list[GroupShippingRead] = []

    model_config = ConfigDict(from_attributes=True)

#############################
# Cart                      #
#############################

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)

class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1)

class CartProduct(BaseModel):
    id: int
    name: str
    price: Amount
    stock: int
    image_url: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class CartItemRead(BaseModel):
    id: int
    product_id: int
    quantity: int
    product: CartProduct

    model_config = ConfigDict(from_attributes=True)

class CartRead(BaseModel):
    items: list[CartItemRead]
    item_count: int
    subtotal_amount: Amount
    shipping: ShippingQuoteRead

#############################
# Orders                    #
#############################

class OrderCreate(BaseModel):
    shipping_address: Stripped = Field(max_length=500)
    recipient_name: Stripped = Field(max_length=200)
    contact_phone: Optional[Stripped] = Field(default=None, max_length=50)
    notes: Optional[str] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    cancel_reason: Optional[str] = Field(default=None, max_length=500)

class OrderUpdate(BaseModel):
    """Customer sends ``action='cancel'``; admins send ``status``."""
    action: Optional[Literal["cancel"]] = None
    status: Optional[OrderStatus] = None
    cancel_reason: Optional[str] = Field(default=None, max_length=500)

class OrderItemRead(BaseModel):
    id: int
    product_id: int
    product_name: str
    price: Amount
    quantity: int
    subtotal: Amount
    product: Optional[ProductSummary] = None

    model_config = ConfigDict(from_attributes=True)

class OrderRead(BaseModel):
    id: int
    order_number: str
    customer_id: int
    subtotal_amount: Amount
    shipping_fee: Amount
    total_amount: Amount
    status: OrderStatus
    shipping_address: str
    recipient_name: str
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    ordered_at: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None
    customer: Optional[CustomerSummary] = None
    items: list[OrderItemRead]

    model_config = ConfigDict(from_attributes=True)

#############################
# Audit log                 #
#############################

class AuditLogRead(BaseModel):
    id: int
    user_id: int
    user_type: str
    action: str
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

#############################
# Settings                  #
#############################

class SystemSettingsRead(BaseModel):
    system_name: str
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: str
    secondary_color: str
    background_color: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

class SystemSettingsUpdate(BaseModel):
    system_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
    secondary_color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
    background_color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
    description: Optional[str] = None

class EmailSettingsRead(BaseModel):
    smtp_host: str
    smtp_port: int
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    from_address: Optional[str] = None
    from_name: Optional[str] = None
    signature: Optional[str] = None
    is_active: bool

class EmailSettingsUpdate(BaseModel):
    smtp_host: Optional[str] = Field(default=None, min_length=1)
    smtp_port: Optional[int] = Field(default=None, ge=1, le=65535)
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    from_address: Optional[str] = None
    from_name: Optional[str] = None
    signature: Optional[str] = None
    is_active: Optional[bool] = None

class PaymentSettingsRead(BaseModel):
    stripe_public_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    currency: str
    is_test_mode: bool
    is_active: bool

class PaymentSettingsUpdate(BaseModel):
    stripe_public_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    is_test_mode: Optional[bool] = None
    is_active: Optional[bool] = None

class PublicPaymentSettings(BaseModel):
    stripe_public_key: Optional[str] = None
    currency: str
    is_test_mode: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

#############################
# Sales report              #
#############################

class SalesReportRow(BaseModel):
    key: str
    label: Optional[str] = None
    total_sales: Amount
    total_shipping: Amount = Decimal("0")
    total_quantity: int = 0
    order_count: int

class SalesReport(BaseModel):
    type: Literal["daily", "monthly", "product", "customer"]
    start_date: date
    end_date: date
    data: list[SalesReportRow]

#############################
# Tags & courses            #
#############################

TagName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]

class TagCreate(BaseModel):
    name: TagName
    color: str = Field(default="#3B82F6", max_length=20)
    description: Optional[str] = None

class TagUpdate(BaseModel):
    name: Optional[TagName] = None
    color: Optional[str] = Field(default=None, max_length=20)
    description: Optional[str] = None

class TagRead(BaseModel):
    id: int
    name: str
    color: str
    description: Optional[str] = None
    customer_count: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CustomerTagAssign(BaseModel):
    tag_id: int

class CustomerTagRead(BaseModel):
    id: int
    customer_id: int
    tag_id: int
    tag: TagRead

    model_config = ConfigDict(from_attributes=True)

class CourseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Money
    duration: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True

class CourseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Money] = None
    duration: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None

class CourseRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Amount
    duration: Optional[str] = None
    is_active: bool
    enrollment_count: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class EnrollmentCreate(BaseModel):
    course_id: int

class EnrollmentRead(BaseModel):
    id: int
    customer_id: int
    course_id: int
    status: str
    enrolled_at: datetime

    model_config = ConfigDict(from_attributes=True)

#############################
# E-mail                    #
#############################

class EmailTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    subject: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    is_default: bool = False

class EmailTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=500)
    content: Optional[str] = Field(default=None, min_length=1)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None

class EmailTemplateRead(BaseModel):
    id: int
    name: str
    subject: str
    content: str
    is_default: bool
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class RecipientQuery(BaseModel):
    include_all: bool = False
    tag_ids: list[int] = []
    course_ids: list[int] = []
    customer_ids: list[int] = []

class RecipientPreview(BaseModel):
    customers: list[CustomerSummary]
    count: int

class BulkSendRequest(RecipientQuery):
    template_id: Optional[int] = None
    subject: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)

class BulkSendResult(BaseModel):
    total_count: int
    success_count: int
    failed_count: int

class SendEmailRequest(BaseModel):
    template_id: Optional[int] = None
    customer_id: Optional[int] = None
    recipient_email: str = Field(min_length=3, max_length=255)
    recipient_name: Optional[str] = None
    subject: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)

class EmailLogRead(BaseModel):
    id: int
    template_id: Optional[int] = None
    customer_id: Optional[int] = None
    subject: str
    recipient_email: str
    recipient_name: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

#############################
# Admin users               #
#############################

AdminRoleName = Literal["OPERATOR", "ADMIN", "OWNER"]

class AdminCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    role: AdminRoleName = "OPERATOR"

class AdminUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[AdminRoleName] = None
    is_active: Optional[bool] = None

class AdminRead(BaseModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
