# Services package.
#
# Each module exposes the handlers for a single domain aggregate:
#
#   post_service    : listing, create / like-toggle / delete / get for Post
#   comment_service : append-only comment creation for Post
#   user_service    : identity sync and current-user lookup for User
#
# Handlers accept an AsyncSession as their first argument so that the
# router layer controls the transaction boundary via the ``get_db``
# dependency, and are wrapped with ``actions.action`` so they always
# return an ``ActionResult`` instead of raising.
