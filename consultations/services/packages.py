from dataclasses import dataclass

from consultations.core.errors import InvalidPackage


@dataclass(frozen=True)
class ConsultationPackage:
    name: str
    title: str
    amount: int
    duration_minutes: int


PACKAGES = {
    'basic': ConsultationPackage('basic', 'Basic Consultation', amount=999, duration_minutes=30),
    'premium': ConsultationPackage('premium', 'Premium Consultation', amount=1999, duration_minutes=60),
    'advanced': ConsultationPackage('advanced', 'Advanced Consultation', amount=2999, duration_minutes=90),
}

PACKAGE_SYNONYMS = {
    'basic consultation': 'basic',
    'premium consultation': 'premium',
    'advanced consultation': 'advanced',
    'basic': 'basic',
    'premium': 'premium',
    'advanced': 'advanced',
}


def resolve_package(package_name: str | None) -> ConsultationPackage:
    normalized = ' '.join((package_name or '').split()).lower()
    key = PACKAGE_SYNONYMS.get(normalized)
    if key is None:
        raise InvalidPackage(
            'Invalid package type.',
            details={'received': package_name, 'allowed': list(PACKAGES)},
        )
    return PACKAGES[key]
