import logging

STRUCTURED_FIELDS = {
    'ip': 'unknown',
    'user': 'anonymous',
    'event': 'unknown',
    'lat': 'unknown',
    'lon': 'unknown',
    'location_id': 'unknown',
    'latency': 'unknown',
    'error': 'unknown',
}


class ExtraFieldsFilter(logging.Filter):
    def filter(self, record):
        for field, default in STRUCTURED_FIELDS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True
