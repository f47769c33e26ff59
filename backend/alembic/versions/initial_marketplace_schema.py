"""Initial marketplace schema: profiles, materials, carts, orders

Revision ID: initial_marketplace_schema
Revises:
Create Date: 2025-07-26

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = 'initial_marketplace_schema'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade():
    op.create_table('user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=50), server_default='vendor', nullable=False),
        sa.Column('business_name', sa.String(length=200), nullable=True),
        sa.Column('business_type', sa.String(length=100), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('pincode', sa.String(length=10), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('delivery_radius', sa.Float(), server_default='25.0', nullable=False),
        sa.Column('average_delivery_time', sa.String(length=50), server_default='Same day', nullable=False),
        sa.Column('minimum_order_amount', sa.Float(), server_default='500.0', nullable=False),
        sa.Column('specialties', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('operating_hours', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('preferences', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('rating', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('total_orders', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_verified', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *timestamps(),
        sa.CheckConstraint('rating >= 0 AND rating <= 5', name='user_rating_range_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('user_profiles_role_idx', 'user_profiles', ['role'])
    op.create_index('user_profiles_city_state_idx', 'user_profiles', ['city', 'state'])
    op.create_index('user_profiles_lat_lng_idx', 'user_profiles', ['latitude', 'longitude'])

    op.create_table('materials',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_name', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('min_order_quantity', sa.Integer(), server_default='1', nullable=False),
        sa.Column('bulk_discount', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('pincode', sa.String(length=10), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('delivery_time', sa.String(length=50), server_default='Same day', nullable=False),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('rating', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('total_reviews', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('is_organic', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('order_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_order_date', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.CheckConstraint('quantity >= 0', name='material_quantity_non_negative_check'),
        sa.CheckConstraint('price >= 0', name='material_price_non_negative_check'),
        sa.CheckConstraint('min_order_quantity >= 1', name='material_min_order_quantity_check'),
        sa.CheckConstraint('bulk_discount >= 0 AND bulk_discount <= 50', name='material_bulk_discount_range_check'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('materials_supplier_available_idx', 'materials', ['supplier_id', 'is_available'])
    op.create_index('materials_category_available_idx', 'materials', ['category', 'is_available'])
    op.create_index('materials_price_idx', 'materials', ['price'])
    op.create_index('materials_city_state_idx', 'materials', ['city', 'state'])

    op.create_table('carts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_items', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Float(), server_default='0.0', nullable=False),
        *timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('cart_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('cart_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('material_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='cart_item_quantity_positive_check'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'material_id', 'supplier_id', name='unique_cart_material_supplier')
    )

    op.create_table('orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=20), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_name', sa.String(length=100), nullable=False),
        sa.Column('total_items', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('delivery_fee', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('discount', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('taxes', sa.Float(), server_default='0.0', nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=50), server_default='pending', nullable=False),
        sa.Column('delivery_address', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('delivery_instructions', sa.String(length=500), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('payment_status', sa.String(length=50), server_default='pending', nullable=False),
        sa.Column('payment_amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=10), server_default='INR', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=500), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', postgresql.UUID(as_uuid=True), nullable=True),
        *timestamps(),
        sa.CheckConstraint('total_items >= 1', name='order_total_items_positive_check'),
        sa.CheckConstraint('subtotal >= 0', name='order_subtotal_non_negative_check'),
        sa.CheckConstraint('total_amount >= 0', name='order_total_amount_non_negative_check'),
        sa.ForeignKeyConstraint(['vendor_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['cancelled_by'], ['user_profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number')
    )
    op.create_index('orders_vendor_status_idx', 'orders', ['vendor_id', 'status'])
    op.create_index('orders_status_created_idx', 'orders', ['status', 'created_at'])

    op.create_table('order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('material_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('material_name', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('supplier_name', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='order_item_quantity_positive_check'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('order_items_supplier_idx', 'order_items', ['supplier_id'])

    op.create_table('order_tracking',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by'], ['user_profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('order_sequences',
        sa.Column('day', sa.String(length=6), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('day')
    )


def downgrade():
    op.drop_table('order_sequences')
    op.drop_table('order_tracking')
    op.drop_index('order_items_supplier_idx', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('orders_status_created_idx', table_name='orders')
    op.drop_index('orders_vendor_status_idx', table_name='orders')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_index('materials_city_state_idx', table_name='materials')
    op.drop_index('materials_price_idx', table_name='materials')
    op.drop_index('materials_category_available_idx', table_name='materials')
    op.drop_index('materials_supplier_available_idx', table_name='materials')
    op.drop_table('materials')
    op.drop_index('user_profiles_lat_lng_idx', table_name='user_profiles')
    op.drop_index('user_profiles_city_state_idx', table_name='user_profiles')
    op.drop_index('user_profiles_role_idx', table_name='user_profiles')
    op.drop_table('user_profiles')
