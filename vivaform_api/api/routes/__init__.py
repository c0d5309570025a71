"""
API route modules.

This package contains subrouters for:
- Auth and users: registration, login, tokens, password lifecycle, accounts
- Tracking: nutrition (with the weekly meal plan), water, weight, recommendations, dashboard
- Foods catalog, onboarding quiz, articles, support tickets and feature flags
- Subscriptions and the Stripe webhook
- Admin back-office and health

Routers are included from vivaform_api.api.main (under the /api/v1 prefix).
"""
