# Services layer for checkout business logic
