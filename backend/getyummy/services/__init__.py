"""
Get Yummy Backend - Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services receive the request's AsyncSession per call and raise
       GetYummyError subclasses; routes stay free of business rules.

Service Inventory:
    - TokenCodec:      JWT signing/verification (built from Settings)
    - MailService:     SMTP delivery with tenacity retries (built from Settings)
    - AuthService:     accounts, sessions, password reset, token housekeeping
    - ImageService:    data-URI image upload and deletion (built from Settings)
    - RecipeService:   recipe CRUD and child-collection reconciliation
    - FavoriteService: user favorites
    - UserService:     profiles, account deletion, admin promotion

Services built from Settings are created once in create_app() and held on
app.state; the stateless ones are module-level singletons.
"""
