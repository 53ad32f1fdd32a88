# Services package.
#
# Each module exposes async functions holding the business logic and
# database access for one aggregate:
#
#   tag_service      CRUD for Tag, name normalisation, tag-id resolution
#   article_service  CRUD for Article with ordered tags
#   section_service  CRUD for Section, ranked listing, auto-derivation
#
# All service functions take an AsyncSession as their first argument so
# the router layer owns the transaction boundary via ``get_db``.
