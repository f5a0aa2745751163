"""
Domain services.

Views stay thin: they parse input, call one of these modules and translate
``core.services.exceptions.ServiceError`` into an HTTP response.
"""
