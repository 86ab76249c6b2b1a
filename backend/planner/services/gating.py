"""Screen gating: which screen a path shows given class and auth state."""

from dataclasses import dataclass

CLASS_CODE_SCREEN = "class_code"
AUTH_SCREEN = "auth"

# Screens that need both an active class and a signed-in user.
PROTECTED = {
    "/app": "app",
    "/settings": "settings",
    "/terms": "terms",
    "/privacy": "privacy",
    "/announcements": "announcements",
}

PUBLIC = {
    "/legal/privacy-policy": "privacy",
}


@dataclass(frozen=True)
class Route:
    screen: str | None = None
    redirect: str | None = None


def resolve_route(path: str, has_class: bool, authenticated: bool) -> Route:
    """Return the screen to render for ``path``, or where to redirect."""
    if path in PUBLIC:
        return Route(screen=PUBLIC[path])

    if path == "/":
        if not has_class:
            return Route(screen=CLASS_CODE_SCREEN)
        return Route(redirect="/app" if authenticated else "/auth")

    if path == "/auth":
        if not has_class:
            return Route(redirect="/")
        if authenticated:
            return Route(redirect="/app")
        return Route(screen=AUTH_SCREEN)

    if path in PROTECTED:
        if not has_class:
            return Route(redirect="/")
        if not authenticated:
            return Route(redirect="/auth")
        return Route(screen=PROTECTED[path])

    return Route(redirect="/")
