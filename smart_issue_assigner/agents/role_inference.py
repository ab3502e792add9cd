"""Infer broad developer roles from a profile's tech stack and skills."""

from typing import Dict, Iterable, List

from ..models.common import CandidateProfile


# Per role: tech-stack category -> known entries, plus skill keywords
ROLE_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    'backend': {
        'languages': ['python', 'java', 'go', 'ruby', 'php', 'c#', 'rust', 'kotlin', 'scala'],
        'frameworks': ['django', 'flask', 'fastapi', 'spring', 'spring boot', 'express', 'nestjs',
                       'laravel', 'rails', 'asp.net'],
        'keywords': ['api', 'backend', 'server', 'database', 'rest', 'graphql', 'microservices',
                     'authentication'],
    },
    'frontend': {
        'languages': ['javascript', 'typescript', 'html', 'css'],
        'frameworks': ['react', 'vue', 'angular', 'svelte', 'next.js', 'nuxt', 'gatsby', 'tailwind',
                       'bootstrap'],
        'keywords': ['ui', 'ux', 'frontend', 'component', 'design', 'responsive', 'interface', 'web'],
    },
    'fullstack': {
        'languages': ['javascript', 'typescript', 'python'],
        'frameworks': ['next.js', 'nuxt', 'django', 'rails', 'meteor'],
        'keywords': ['fullstack', 'full-stack', 'end-to-end', 'mern', 'mean', 'lamp'],
    },
    'mobile': {
        'languages': ['swift', 'kotlin', 'java', 'dart', 'javascript', 'typescript'],
        'frameworks': ['react native', 'flutter', 'ionic', 'xamarin', 'swiftui'],
        'keywords': ['mobile', 'ios', 'android', 'app', 'native'],
    },
    'ml': {
        'languages': ['python', 'r', 'julia'],
        'frameworks': ['tensorflow', 'pytorch', 'scikit-learn', 'keras', 'pandas', 'numpy'],
        'keywords': ['machine learning', 'ml', 'ai', 'deep learning', 'neural', 'model',
                     'data science', 'nlp'],
    },
    'devops': {
        'tools': ['docker', 'kubernetes', 'jenkins', 'gitlab ci', 'github actions', 'terraform',
                  'ansible', 'aws', 'azure', 'gcp', 'digitalocean', 'heroku'],
        'keywords': ['devops', 'ci/cd', 'deployment', 'infrastructure', 'cloud', 'pipeline', 'container'],
    },
    'data': {
        'languages': ['python', 'sql', 'r'],
        'tools': ['spark', 'hadoop', 'airflow', 'kafka'],
        'databases': ['postgresql', 'mongodb', 'redis', 'elasticsearch', 'cassandra'],
        'keywords': ['data', 'analytics', 'etl', 'pipeline', 'warehouse', 'big data'],
    },
}

ROLE_THRESHOLD = 0.3


def _overlaps(value: str, patterns: Iterable[str]) -> bool:
    return any(value in pattern or pattern in value for pattern in patterns)


def _normalize(values: Iterable[str]) -> List[str]:
    return [value.strip().lower() for value in values if value and value.strip()]


def infer_roles(profile: CandidateProfile) -> List[str]:
    """Roles whose patterns cover more than 30% of their checks.

    Each known entry in a tech-stack category counts as one check; keyword
    matching against skill names counts as a single check.
    """
    stack = {category: _normalize(entries) for category, entries in profile.tech_stack.categories()}
    skill_names = _normalize(skill.name for skill in profile.skills)

    roles = []
    for role, patterns in ROLE_PATTERNS.items():
        matches = 0
        checks = 0
        for category, known in patterns.items():
            if category == 'keywords':
                matches += sum(1 for name in skill_names if _overlaps(name, known))
                checks += 1
                continue
            matches += sum(1 for entry in stack.get(category, []) if _overlaps(entry, known))
            checks += len(known)

        if checks and matches / checks > ROLE_THRESHOLD:
            roles.append(role)

    return roles
