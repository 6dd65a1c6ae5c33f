# Route modules for the product API: operational endpoints and the product catalog.
