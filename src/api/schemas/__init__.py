# Pydantic request and response models for the product API.
