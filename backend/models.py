from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
    Index,
    text,
    ForeignKey,
    Float,
    Integer,
    JSON,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm import declarative_base
from typing import Optional, List
import uuid

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UserProfile(Base):
    """
    Application profile for an authenticated user (vendor, supplier or admin)
    user_id is the subject of the Supabase JWT
    """
    __tablename__ = "user_profiles"
    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="user_rating_range_check"),
        Index("user_profiles_role_idx", "role"),
        Index("user_profiles_city_state_idx", "city", "state"),
        Index("user_profiles_lat_lng_idx", "latitude", "longitude"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))

    # Role-based access control: "vendor", "supplier" or "admin"
    role: Mapped[str] = mapped_column(String(50), default="vendor", nullable=False)

    # Business Information
    business_name: Mapped[Optional[str]] = mapped_column(String(200))
    business_type: Mapped[Optional[str]] = mapped_column(String(100))

    # Location Information
    address: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[Optional[str]] = mapped_column(String(10))
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    # Supplier details
    delivery_radius: Mapped[float] = mapped_column(Float, default=25.0, nullable=False)  # km
    average_delivery_time: Mapped[str] = mapped_column(String(50), default="Same day", nullable=False)
    minimum_order_amount: Mapped[float] = mapped_column(Float, default=500.0, nullable=False)
    specialties: Mapped[Optional[list]] = mapped_column(JSONType)
    operating_hours: Mapped[Optional[dict]] = mapped_column(JSONType)  # {"open": "08:00", "close": "20:00", "days": [...]}

    # Vendor details
    preferences: Mapped[Optional[dict]] = mapped_column(JSONType, default=dict)

    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    materials: Mapped[List["Material"]] = relationship(
        "Material",
        back_populates="supplier",
        cascade="all, delete-orphan"
    )
    cart: Mapped[Optional["Cart"]] = relationship(
        "Cart",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )


class Material(Base):
    """
    Raw materials listed by suppliers
    """
    __tablename__ = "materials"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="material_quantity_non_negative_check"),
        CheckConstraint("price >= 0", name="material_price_non_negative_check"),
        CheckConstraint("min_order_quantity >= 1", name="material_min_order_quantity_check"),
        CheckConstraint("bulk_discount >= 0 AND bulk_discount <= 50", name="material_bulk_discount_range_check"),
        Index("materials_supplier_available_idx", "supplier_id", "is_available"),
        Index("materials_category_available_idx", "category", "is_available"),
        Index("materials_price_idx", "price"),
        Index("materials_city_state_idx", "city", "state"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Basic Material Information
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)  # kg, g, l, piece, etc.

    # Pricing and stock
    price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    min_order_quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    bulk_discount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # percent

    # Pickup location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(500))
    delivery_time: Mapped[str] = mapped_column(String(50), default="Same day", nullable=False)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSONType)

    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Status
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_organic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Order statistics
    order_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_order_date: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    supplier: Mapped["UserProfile"] = relationship("UserProfile", back_populates="materials")


class Cart(Base):
    """
    One cart per user, created lazily on first access
    """
    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    # Cached totals, recomputed from items on every mutation
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    user: Mapped["UserProfile"] = relationship("UserProfile", back_populates="cart")
    items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.added_at"
    )


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="cart_item_quantity_positive_check"),
        UniqueConstraint("cart_id", "material_id", "supplier_id", name="unique_cart_material_supplier"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False
    )
    material_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(500))

    added_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    cart: Mapped["Cart"] = relationship("Cart", back_populates="items")
    material: Mapped["Material"] = relationship("Material")


class Order(Base):
    """
    Orders placed by vendors, possibly spanning several suppliers
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_items >= 1", name="order_total_items_positive_check"),
        CheckConstraint("subtotal >= 0", name="order_subtotal_non_negative_check"),
        CheckConstraint("total_amount >= 0", name="order_total_amount_non_negative_check"),
        Index("orders_vendor_status_idx", "vendor_id", "status"),
        Index("orders_status_created_idx", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    # Buyer
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    vendor_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Amounts
    total_items: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    delivery_fee: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    discount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    taxes: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)

    # "pending", "confirmed", "processing", "packed", "shipped", "out_for_delivery", "delivered", "cancelled", "returned"
    status: Mapped[str] = mapped_column(String(50), default="pending", nullable=False)

    # Delivery details
    delivery_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    delivery_instructions: Mapped[Optional[str]] = mapped_column(String(500))
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100))
    estimated_delivery: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))
    actual_delivery: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))

    # Payment
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)  # "cod", "online"
    payment_status: Mapped[str] = mapped_column(String(50), default="pending", nullable=False)
    payment_amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="INR", nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Cancellation
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500))
    cancelled_at: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))
    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    # Relationships
    vendor: Mapped["UserProfile"] = relationship("UserProfile", foreign_keys=[vendor_id])
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan"
    )
    tracking: Mapped[List["OrderTracking"]] = relationship(
        "OrderTracking",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderTracking.created_at"
    )


class OrderItem(Base):
    """
    Snapshot of a material at the moment the order was placed
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="order_item_quantity_positive_check"),
        Index("order_items_supplier_idx", "supplier_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )
    material_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("materials.id", ondelete="SET NULL")
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )

    material_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")


class OrderTracking(Base):
    """
    Append-only status history of an order
    """
    __tablename__ = "order_tracking"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="SET NULL")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="tracking")


class OrderSequence(Base):
    """
    Per-day counter for order numbers, incremented with a single upsert
    """
    __tablename__ = "order_sequences"

    day: Mapped[str] = mapped_column(String(6), primary_key=True)  # YYMMDD
    last_value: Mapped[int] = mapped_column(Integer, nullable=False)
