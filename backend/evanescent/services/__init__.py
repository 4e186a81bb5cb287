# Services package init
"""
Evanescent Backend: Services Layer
====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services are plain classes built once by create_app() and
       stored on `app.state`; routes receive them through FastAPI dependencies.
       Every method that touches the store takes the request's AsyncSession.

Service Inventory:
    - PasswordService: argon2id hash + verify (fixed cost)
    - TokenService: issue/verify access and refresh JWTs (two secrets)
    - SessionService: signup, login, refresh, user-info
    - WriteupService: feed, create, like/unlike, claim/unclaim, delete
"""
