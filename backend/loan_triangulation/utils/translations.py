"""
Display strings used by the triangulation results and job status messages.

Only English ("en") and Turkish ("tr") are supported. Unknown language codes
fall back to English.
"""
from typing import Dict

SUPPORTED_LANGUAGES = ('en', 'tr')

_STRINGS: Dict[str, Dict[str, str]] = {
    'en': {
        'none': 'None',
        'pipeline_failed': 'Pipeline job failed',
        'processing_failed': 'PDF processing failed',
        'status_failed': 'Failed to fetch job status',
        'polling_failed': 'Status polling failed',
        'missing_result': 'Job completed without a result payload',
        'missing_job_id': 'Job id missing from response',
        'config_failed': 'Config fetch failed',
        'timed_out': 'Timed out waiting for the pipeline job',
    },
    'tr': {
        'none': 'Yok',
        'pipeline_failed': 'Pipeline işi başarısız oldu',
        'processing_failed': 'PDF işleme başarısız oldu',
        'status_failed': 'İş durumu alınamadı',
        'polling_failed': 'Durum sorgulaması başarısız oldu',
        'missing_result': 'İş sonuç verisi olmadan tamamlandı',
        'missing_job_id': 'Yanıtta iş kimliği yok',
        'config_failed': 'Config yüklenemedi',
        'timed_out': 'Pipeline işi beklenirken zaman aşımı oluştu',
    },
}

FIELD_NAMES: Dict[str, Dict[str, str]] = {
    'borrower_name': {'en': 'Borrower Name', 'tr': 'Borçlu Adı'},
    'property_address': {'en': 'Property Address', 'tr': 'Mülk Adresi'},
    'loan_number': {'en': 'Loan Number', 'tr': 'Kredi Numarası'},
}


def resolve_language(language: str) -> str:
    """Return a supported language code, defaulting to English."""
    if language and language.lower() in SUPPORTED_LANGUAGES:
        return language.lower()
    return 'en'


def translate(key: str, language: str = 'en') -> str:
    """Look up a display string; unknown keys are returned unchanged."""
    return _STRINGS[resolve_language(language)].get(key, key)


def field_display_name(field_name: str, language: str = 'en') -> str:
    """
    Human readable name of an extraction field.

    Fields outside the built-in set (e.g. from a backend schema) are title-cased.
    """
    names = FIELD_NAMES.get(field_name)
    if names:
        return names[resolve_language(language)]
    return field_name.replace('_', ' ').title()
