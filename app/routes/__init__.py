from .customer import customer_bp
from .vendor import vendor_bp
from .admin import admin_bp
from .bank import bank_bp


__all__ = [
    'customer_bp',
    'vendor_bp',
    'admin_bp',
    'bank_bp',
]
