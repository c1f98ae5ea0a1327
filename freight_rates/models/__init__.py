from freight_rates.models.carrier import ApiKey, CarrierConfig

__all__ = ["ApiKey", "CarrierConfig"]
