"""HTTP layer: routes, middleware, request models and dependencies."""
