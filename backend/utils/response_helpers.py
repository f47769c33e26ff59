"""
Response helper utilities for UUID conversion and model-to-dict mapping
"""
from typing import Any, Dict, Optional
import uuid


def convert_uuids_to_strings(obj: Any) -> Any:
    """
    Recursively convert UUID objects to strings in any data structure
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: convert_uuids_to_strings(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_uuids_to_strings(item) for item in obj]
    else:
        return obj


def location_to_dict(obj) -> Optional[Dict[str, Any]]:
    """Group the flattened location columns of a profile or material"""
    if obj.latitude is None or obj.longitude is None:
        return None
    return {
        'latitude': obj.latitude,
        'longitude': obj.longitude,
        'address': obj.address,
        'city': obj.city,
        'state': obj.state,
        'pincode': obj.pincode,
    }


def user_profile_to_dict(user_profile) -> Dict[str, Any]:
    """Convert UserProfile model to dict with string UUIDs"""
    return {
        'id': str(user_profile.id),
        'user_id': str(user_profile.user_id),
        'email': user_profile.email,
        'name': user_profile.name,
        'role': user_profile.role,
        'phone': user_profile.phone,
        'business_name': user_profile.business_name,
        'business_type': user_profile.business_type,
        'location': location_to_dict(user_profile),
        'delivery_radius': user_profile.delivery_radius,
        'average_delivery_time': user_profile.average_delivery_time,
        'minimum_order_amount': user_profile.minimum_order_amount,
        'specialties': user_profile.specialties,
        'operating_hours': user_profile.operating_hours,
        'rating': user_profile.rating,
        'total_orders': user_profile.total_orders,
        'is_verified': user_profile.is_verified,
        'is_active': user_profile.is_active,
        'created_at': user_profile.created_at,
        'updated_at': user_profile.updated_at
    }


def supplier_to_dict(profile) -> Dict[str, Any]:
    """Public supplier view of a UserProfile"""
    return {
        'id': str(profile.id),
        'name': profile.name,
        'business_name': profile.business_name,
        'business_type': profile.business_type,
        'phone': profile.phone,
        'location': location_to_dict(profile),
        'delivery_radius': profile.delivery_radius,
        'average_delivery_time': profile.average_delivery_time,
        'minimum_order_amount': profile.minimum_order_amount,
        'specialties': profile.specialties or [],
        'operating_hours': profile.operating_hours,
        'rating': profile.rating,
        'total_orders': profile.total_orders,
        'is_verified': profile.is_verified,
        'created_at': profile.created_at,
    }


def material_to_dict(material, low_stock_threshold: int = 10) -> Dict[str, Any]:
    """Convert Material model to dict with string UUIDs and derived stock fields"""
    if material.bulk_discount > 0:
        discount_price = round(material.price * (1 - material.bulk_discount / 100), 2)
    else:
        discount_price = material.price

    return {
        'id': str(material.id),
        'name': material.name,
        'description': material.description,
        'category': material.category,
        'unit': material.unit,
        'price': material.price,
        'quantity': material.quantity,
        'min_order_quantity': material.min_order_quantity,
        'bulk_discount': material.bulk_discount,
        'discount_price': discount_price,
        'supplier_id': str(material.supplier_id),
        'supplier_name': material.supplier_name,
        'location': location_to_dict(material),
        'image_url': material.image_url,
        'delivery_time': material.delivery_time,
        'tags': material.tags or [],
        'rating': material.rating,
        'total_reviews': material.total_reviews,
        'is_available': material.is_available,
        'is_organic': material.is_organic,
        'is_low_stock': material.quantity <= low_stock_threshold,
        'stock_value': round(material.price * material.quantity, 2),
        'order_count': material.order_count,
        'last_order_date': material.last_order_date,
        'created_at': material.created_at,
        'updated_at': material.updated_at,
    }
