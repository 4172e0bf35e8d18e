# Schemas package init
"""
Get Yummy Backend - Pydantic Schemas
====================================

API contracts, kept separate from the ORM models so internal columns
(password hashes, admin flags, token ids) are never serialized by accident.
JSON keys are snake_case except where the public contract names camelCase
(accessToken, refreshToken, newPassword, recipeId, imageBase64, ...); those
fields declare an alias and accept both spellings on input.
"""
