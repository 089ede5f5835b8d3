from clinicflow.models.schedule import Appointment, ProviderAvailability, ProviderBreak

__all__ = ["Appointment", "ProviderAvailability", "ProviderBreak"]
