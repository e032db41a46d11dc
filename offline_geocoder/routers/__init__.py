"""API routers for the offline geocoder."""
