"""
Settings for the Order Preparation engine.

Values come from the ``ORDER_PREP`` dict in Django settings, falling back to
the defaults below::

    ORDER_PREP = {
        'MAX_CLAIM_ATTEMPTS': 5,
        'AUTO_START_ON_CLAIM': True,
    }
"""

from django.conf import settings

DEFAULTS = {
    'ORDER_SOURCE': 'order_prep.adapters.order_source.MockOrderSource',
    'ORDER_SOURCE_BASE_URL': '',
    'ORDER_SOURCE_TOKEN': '',
    'ORDER_SOURCE_TIMEOUT': 10.0,
    'ORDER_SOURCE_PAGE_SIZE': 40,
    # "New order" in its custom and original form, plus the under_review slug
    'OPEN_STATUS_FILTERS': ['under_review', '449146439', '566146469'],
    'REMOTE_STATUS_MAP': {
        'preparing': '1956875584',
        'waiting': '566146469',
        'completed': '758513988',
        'released': '566146469',
        'reopened': '449146439',
    },
    'MAX_CLAIM_ATTEMPTS': 10,
    'AUTO_START_ON_CLAIM': False,
}


class PrepSettings:
    """Attribute access to ORDER_PREP with defaults, read on every lookup."""

    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid ORDER_PREP setting: {name}")
        user_settings = getattr(settings, 'ORDER_PREP', {}) or {}
        return user_settings.get(name, DEFAULTS[name])

    def remote_status_for(self, state: str):
        """Remote status tag pushed when an assignment enters ``state``, if any."""
        return self.REMOTE_STATUS_MAP.get(state)


prep_settings = PrepSettings()
