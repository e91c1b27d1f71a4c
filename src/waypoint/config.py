"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    The parser options are defaults for every route; a ``Route`` can
    override each of them individually::

        config = RouterConfig(sensitive=True, strict=True)
    """

    # Path parser defaults
    sensitive: bool = False  # Case-sensitive static segments
    strict: bool = False  # Trailing slash must match exactly
    end: bool = True  # Pattern must consume the whole path

    # Registration diagnostics
    warn_absolute_params: bool = True  # Log absolute children that drop parent params
