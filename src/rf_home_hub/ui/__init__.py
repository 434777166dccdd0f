"""Terminal UI helpers."""

from rf_home_hub.ui.display import (
    display_cards,
    display_codes,
    display_hooks,
    display_ports,
    get_console,
    get_err_console,
    print_banner,
    print_error,
    print_live_message,
    print_success,
    print_warning,
)

__all__ = [
    "get_console",
    "get_err_console",
    "print_banner",
    "print_success",
    "print_warning",
    "print_error",
    "display_cards",
    "display_codes",
    "display_hooks",
    "display_ports",
    "print_live_message",
]
