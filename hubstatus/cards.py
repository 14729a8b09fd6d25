"""HTML fragments for the system-metric and connection cards of the dashboard."""

from __future__ import annotations

from hubstatus.collector import PI5_HOST, PI52_HOST
from hubstatus.dashboard import SystemStatus, format_bytes, progress_bar_color

_CARD_OPEN = (
    '<div class="bg-gradient-to-br from-gray-800 to-gray-700 p-6 rounded-xl text-center '
    'shadow-lg hover:shadow-2xl transition-all duration-300 hover:scale-105 '
    'border border-gray-600/30">'
)
_LABEL_CLASS = "text-gray-300 text-sm mb-2 font-medium uppercase tracking-wider"
_BAR_BASE_CLASS = "h-full rounded-full transition-all duration-500 ease-out"

_ESCAPES = str.maketrans(
    {"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"}
)


def _escape(text: str) -> str:
    return text.translate(_ESCAPES)


def _label(text: str) -> str:
    return f'<div class="{_LABEL_CLASS}">{text}</div>'


def _icon(color: str, icon: str) -> str:
    return f'<div class="text-4xl mb-3 {color}"><i class="fas {icon}"></i></div>'


def _usage_card(
    comment: str,
    color: str,
    icon: str,
    label: str,
    signal: str,
    percent: float,
    value_margin: str,
    detail: str | None = None,
) -> str:
    parts = [
        f"<!-- {comment} -->",
        _CARD_OPEN,
        _icon(color, icon),
        _label(label),
        f'<div class="text-3xl font-bold {value_margin} text-white" '
        f'data-text="`${{${signal}}}%`">',
        _escape(f"{percent:.1f}%"),
        "</div>",
    ]
    if detail is not None:
        parts.append(detail)
    classes = f"{_BAR_BASE_CLASS} {progress_bar_color(percent)}"
    parts.extend(
        [
            '<div class="w-full bg-gray-900/50 rounded-full h-3 overflow-hidden shadow-inner">',
            f'<div class="{_escape(classes)}" style="{_escape(f"width: {percent:.1f}%")}" ',
            f"data-style-width=\"${signal} + '%'\" ",
            f"data-class=\"${signal} < 50 ? 'bg-gradient-to-r from-green-400 to-green-500' : "
            f"${signal} < 80 ? 'bg-gradient-to-r from-yellow-400 to-yellow-500' : "
            "'bg-gradient-to-r from-red-400 to-red-500'\"></div></div></div>",
        ]
    )
    return "".join(parts)


def _used_of_total(used_signal: str, total_signal: str, used: int, total: int) -> str:
    return (
        f'<div class="text-sm text-gray-400 mb-2" '
        f'data-text="`${{${used_signal}}} / ${{${total_signal}}}`">'
        f"{_escape(format_bytes(used))} / {_escape(format_bytes(total))}</div>"
    )


def _value_card(comment: str, color: str, icon: str, label: str, data_text: str, value: str) -> str:
    return "".join(
        [
            f"<!-- {comment} -->",
            _CARD_OPEN,
            _icon(color, icon),
            _label(label),
            f'<div class="text-2xl font-bold text-white" data-text="{data_text}">',
            value,
            "</div></div>",
        ]
    )


def render_system_stats_cards(system: SystemStatus) -> str:
    """Cards for CPU, memory, disk, uptime, network and database size."""
    return "".join(
        [
            _usage_card(
                "CPU Usage", "text-blue-400", "fa-microchip", "CPU Usage",
                "cpuPercent", system.cpu_percent, "mb-3",
            ),
            _usage_card(
                "Memory Usage", "text-purple-400", "fa-memory", "Memory Usage",
                "memoryPercent", system.memory_percent, "mb-1",
                _used_of_total("memoryUsed", "memoryTotal", system.memory_used, system.memory_total),
            ),
            _usage_card(
                "Disk Usage", "text-orange-400", "fa-hard-drive", "Disk Usage",
                "diskPercent", system.disk_percent, "mb-1",
                _used_of_total("diskUsed", "diskTotal", system.disk_used, system.disk_total),
            ),
            _value_card(
                "System Uptime", "text-green-400", "fa-clock", "System Uptime",
                "$uptime", _escape(system.uptime),
            ),
            _value_card(
                "Network In", "text-cyan-400", "fa-download", "Network In",
                "`${$networkIn}/s`", _escape(format_bytes(system.network_in)) + "/s",
            ),
            _value_card(
                "Network Out", "text-pink-400", "fa-upload", "Network Out",
                "`${$networkOut}/s`", _escape(format_bytes(system.network_out)) + "/s",
            ),
            _value_card(
                "Database Size", "text-indigo-400", "fa-database", "Database Size",
                "$databaseSize", _escape(format_bytes(system.database_size)),
            ),
        ]
    )


def _connection_card(
    comment: str,
    icon_class: str,
    on_color: str,
    label: str,
    signal: str,
    up: bool,
    words: tuple[str, str],
) -> str:
    yes, no = words
    color = on_color if up else "text-gray-500"
    state = (
        f'<span class="text-green-400">{yes}</span>'
        if up
        else f'<span class="text-red-400">{no}</span>'
    )
    return "".join(
        [
            f"<!-- {comment} -->",
            _CARD_OPEN,
            f'<div class="text-4xl mb-3"><i class="{icon_class} {color}"></i></div>',
            _label(label),
            f"<div class=\"text-2xl font-bold\" "
            f"data-class=\"${signal} ? 'text-green-400' : 'text-red-400'\" "
            f"data-text=\"${signal} ? '{yes}' : '{no}'\">",
            state,
            "</div></div>",
        ]
    )


def render_connection_cards(system: SystemStatus) -> str:
    """Cards showing whether the database, HAProxy, Docker and hosts are reachable."""
    connected = ("Connected", "Disconnected")
    reachable = ("Reachable", "Unreachable")
    return "".join(
        [
            _connection_card(
                "Database Connection", "fas fa-database", "text-blue-500", "PostgreSQL",
                "databaseConnected", system.database_connected, connected,
            ),
            _connection_card(
                "HAProxy Connection", "fas fa-network-wired", "text-orange-500", "HAProxy",
                "haproxyConnected", system.haproxy_connected, connected,
            ),
            _connection_card(
                "Docker Connection", "fab fa-docker", "text-cyan-500", "Docker",
                "dockerConnected", system.docker_connected, connected,
            ),
            _connection_card(
                "Pi5 Host", "fas fa-server", "text-purple-500", f"Pi5 ({PI5_HOST})",
                "pi5Connected", system.pi5_connected, reachable,
            ),
            _connection_card(
                "Pi5-2 Host", "fas fa-server", "text-pink-500", f"Pi5-2 ({PI52_HOST})",
                "pi52Connected", system.pi52_connected, reachable,
            ),
        ]
    )