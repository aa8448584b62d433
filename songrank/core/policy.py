from songrank.core.context import RequestContext
from songrank.core.exceptions import Forbidden, Unauthenticated


class SongPolicy:
    """
    Role-based capability checks for songs.

    Reading approved songs and suggesting new ones is open to everybody.
    Any authenticated user passes the base ``can_create`` check, but direct
    creation and moderation additionally require ``role == "admin"``; the
    stricter check always wins.
    """

    ADMIN_ROLE = "admin"

    def can_view(self, ctx: RequestContext) -> bool:
        return True

    def can_suggest(self, ctx: RequestContext) -> bool:
        return True

    def can_create(self, ctx: RequestContext) -> bool:
        return ctx.is_authenticated

    def can_create_direct(self, ctx: RequestContext) -> bool:
        return self.can_create(ctx) and ctx.role == self.ADMIN_ROLE

    def can_moderate(self, ctx: RequestContext) -> bool:
        return ctx.is_authenticated and ctx.role == self.ADMIN_ROLE

    def authorize_create_direct(self, ctx: RequestContext) -> None:
        if not ctx.is_authenticated:
            raise Unauthenticated()
        if not self.can_create_direct(ctx):
            raise Forbidden("Only administrators can create songs directly.")

    def authorize_moderation(self, ctx: RequestContext) -> None:
        if not ctx.is_authenticated:
            raise Unauthenticated()
        if not self.can_moderate(ctx):
            raise Forbidden("Only administrators can manage songs.")


song_policy = SongPolicy()
