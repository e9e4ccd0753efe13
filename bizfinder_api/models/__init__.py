from bizfinder_api.models.business import Business, BusinessRating, BUSINESS_CATEGORIES
from bizfinder_api.models.payment import Payment

__all__ = ["Business", "BusinessRating", "BUSINESS_CATEGORIES", "Payment"]
