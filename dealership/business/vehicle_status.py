"""
Vehicle status groupings and display helpers.

The public storefront collapses the seventeen pipeline statuses into three
buckets (Arriving Soon, Arrived, Reserved) and hides sold and delivered
vehicles entirely. The back office shows the raw status in title case.
"""

from typing import Dict, Optional

ARRIVING_SOON_STATUSES = (
    'auction_won',
    'payment_processing',
    'pickup_scheduled',
    'in_transit_to_port',
    'at_port',
    'shipped',
    'in_transit',
    'at_uae_port',
    'customs_clearance',
    'released_from_customs',
    'in_transit_to_yard',
)

ARRIVED_STATUSES = ('at_yard', 'under_enhancement', 'ready_for_sale')

RESERVED_STATUSES = ('reserved',)

HIDDEN_STATUSES = ('sold', 'delivered')


def format_admin_status(status: Optional[str]) -> str:
    """``in_transit_to_port`` -> ``In Transit To Port``."""
    if not status:
        return ''
    return ' '.join(word[:1].upper() + word[1:] for word in status.split('_'))


def get_public_status_label(status: str) -> Optional[str]:
    if status in ARRIVING_SOON_STATUSES:
        return 'Arriving Soon'
    if status in ARRIVED_STATUSES:
        return 'Arrived'
    if status in RESERVED_STATUSES:
        return 'Reserved'
    return None


def should_show_in_public(status: str) -> bool:
    return status not in HIDDEN_STATUSES


def get_status_color_info(status: str) -> Dict[str, str]:
    """Category, colour and label used to badge a status."""
    if status in ARRIVING_SOON_STATUSES:
        return {'category': 'arriving-soon', 'color': 'blue', 'label': 'Arriving Soon'}
    if status in ARRIVED_STATUSES:
        return {'category': 'arrived', 'color': 'emerald', 'label': 'Arrived'}
    if status in RESERVED_STATUSES:
        return {'category': 'reserved', 'color': 'amber', 'label': 'Reserved'}
    return {'category': 'unknown', 'color': 'gray', 'label': format_admin_status(status)}


__all__ = [
    'ARRIVING_SOON_STATUSES',
    'ARRIVED_STATUSES',
    'RESERVED_STATUSES',
    'HIDDEN_STATUSES',
    'format_admin_status',
    'get_public_status_label',
    'should_show_in_public',
    'get_status_color_info',
]
