"""HTML fragment listing one card per monitored service on the dashboard."""

from __future__ import annotations

from collections.abc import Iterable

from hubstatus.dashboard import status_indicator_class
from hubstatus.models import ServiceStatus

_CARD_OPEN = (
    '<div class="bg-gradient-to-br from-gray-800/80 to-gray-700/80 backdrop-blur-sm '
    'rounded-xl p-6 relative transition-all duration-300 hover:scale-105 hover:shadow-2xl '
    'border border-gray-600/30">'
)
_HEADER_OPEN = (
    '<div class="flex items-center justify-between mb-4"><div class="flex items-center">'
    '<i class="fas fa-cube text-2xl mr-3 text-indigo-400"></i>'
    '<div class="text-lg font-semibold text-white">'
)
_INDICATOR_BASE_CLASS = "w-4 h-4 rounded-full shadow-lg"
_STATUS_OPEN = (
    '<div class="text-gray-300 text-sm">'
    '<i class="fas fa-info-circle text-gray-500 mr-2"></i> Status:  '
)

_ESCAPES = str.maketrans(
    {"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"}
)


def _escape(text: str) -> str:
    return text.translate(_ESCAPES)


def _indicator(index: int, healthy: bool) -> str:
    classes = f"{_INDICATOR_BASE_CLASS} {status_indicator_class(healthy)}"
    expression = (
        f"$service{index}_healthy ? 'bg-green-500 glow-green' : 'bg-red-500 glow-red'"
    )
    return f'<div class="{_escape(classes)}" data-class="{_escape(expression)}"></div>'


def _status_line(index: int, service: ServiceStatus) -> str:
    color = "text-green-400" if service.healthy else "text-red-400"
    signal = _escape(f"$service{index}_status")
    return (
        f'{_STATUS_OPEN}<strong class="{color}" data-text="{signal}">'
        f"{_escape(service.status)}</strong></div>"
    )


def _details_line(index: int, details: str) -> str:
    signal = _escape(f"$service{index}_details")
    return (
        f'<div class="text-gray-400 text-sm mt-2" data-if="{signal}">'
        '<i class="fas fa-exclamation-triangle text-yellow-500 mr-2"></i> '
        f'<span data-text="{signal}">{_escape(details)}</span></div>'
    )


def _uptime_line(index: int, uptime: str) -> str:
    signal = _escape(f"$service{index}_uptime")
    return (
        f'<div class="text-green-400 text-sm mt-3 font-medium" data-if="{signal}">'
        '<i class="fas fa-check-circle mr-2"></i> Uptime: '
        f'<span data-text="{signal}">{_escape(uptime)}</span></div>'
    )


def _service_card(index: int, service: ServiceStatus) -> str:
    parts = [
        _CARD_OPEN,
        _HEADER_OPEN,
        _escape(service.name),
        "</div></div>",
        _indicator(index, service.healthy),
        "</div>",
        _status_line(index, service),
    ]
    if service.details:
        parts.append(_details_line(index, service.details))
    if service.uptime:
        parts.append(_uptime_line(index, service.uptime))
    parts.append("</div>")
    return "".join(parts)


def render_services_cards(services: Iterable[ServiceStatus]) -> str:
    """One card per service, bound to the ``service<N>_*`` client signals."""
    return "".join(
        _service_card(index, service) for index, service in enumerate(services)
    )