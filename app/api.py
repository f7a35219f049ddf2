from app.routes import customer_bp, vendor_bp, admin_bp, bank_bp
import logging


def register_api_v1(app):
    """Register blueprint routes under the API version prefix."""
    for bp in (customer_bp, vendor_bp, admin_bp, bank_bp):
        app.register_blueprint(bp)
    logging.info("API v1 blueprints registered")
