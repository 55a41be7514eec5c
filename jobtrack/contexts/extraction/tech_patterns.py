"""
Technology pattern library for the Extraction context.

Static, data-driven tables used by the tech-stack canonicalizer:
- TECH_PATTERNS: single-term matchers mapped to canonical display names
- CORE_CLOUD_PATTERNS: cloud service names scanned even on long lists
- COMPOUND_PATTERNS: one source mention that yields several technologies
- PAREN_PATTERNS: "<platform> (<service>, <service>)" expansions
- SERVICE_MAP / CANONICAL_NAMES: alias lookups to canonical names
- False-positive and classifier tables

Pattern records are frozen dataclasses compiled once at import. Matching
uses explicit word boundaries that also work for names ending in symbols
(C++, C#) or starting with a dot (.NET). Names that double as common English
words are matched case-sensitively.
"""

import re
from dataclasses import dataclass, field

# =============================================================================
# CATEGORY KEYS
# =============================================================================

CATEGORY_KEYS = (
    "languages",
    "frameworks",
    "stateManagement",
    "data",
    "apis",
    "buildTools",
    "packageManagers",
    "styling",
    "testing",
    "concepts",
    "versionControl",
    "databases",
    "architecture",
    "devOps",
    "methodologies",
    "designPrinciples",
    "operatingSystems",
    "collaborationTools",
)

# =============================================================================
# PATTERN TYPES
# =============================================================================


def _phrase_regex(phrase: str) -> str:
    """Escape a literal phrase, allowing any run of whitespace between words."""
    return r"\s+".join(re.escape(word) for word in phrase.split())


def _bounded(body: str) -> str:
    return rf"(?<!\w)(?:{body})(?!\w)"


@dataclass(frozen=True)
class TechPattern:
    """A matcher for one technology and the canonical name it maps to."""

    name: str
    matcher: re.Pattern
    phrases: tuple[str, ...] = ()

    def found_in(self, text: str) -> bool:
        return self.matcher.search(text) is not None


@dataclass(frozen=True)
class CompoundPattern:
    """A single mention that expands to several canonical names."""

    matcher: re.Pattern
    names: tuple[str, ...]


@dataclass(frozen=True)
class CategoryRule:
    """Lexical membership rule assigning a technology to a category."""

    category: str
    terms: tuple[str, ...]
    exact: bool = False

    def matches(self, term: str) -> bool:
        lowered = term.lower()
        if self.exact:
            return lowered in self.terms
        return any(t in lowered for t in self.terms)


@dataclass(frozen=True)
class SiblingRule:
    """Drop a generic name when a more specific sibling is present."""

    generic: str
    specific_terms: tuple[str, ...] = ()
    specific_prefix: str | None = None

    def applies(self, present: set[str]) -> bool:
        if any(t in present for t in self.specific_terms):
            return True
        if self.specific_prefix:
            return any(
                t.startswith(self.specific_prefix) and t != self.generic for t in present
            )
        return False


def _term(name: str, *phrases: str, exact_case: bool = False) -> TechPattern:
    """Literal-phrase pattern; defaults to matching the canonical name itself."""
    phrases = phrases or (name,)
    ordered = sorted(phrases, key=len, reverse=True)
    body = "|".join(_phrase_regex(p) for p in ordered)
    flags = 0 if exact_case else re.IGNORECASE
    return TechPattern(name=name, matcher=re.compile(_bounded(body), flags), phrases=phrases)


def _regex(name: str, pattern: str, flags: int = 0) -> TechPattern:
    """Hand-written pattern for names that need extra context to match safely."""
    return TechPattern(name=name, matcher=re.compile(pattern, flags))


# =============================================================================
# SINGLE-TERM TABLE
# =============================================================================

TECH_PATTERNS: tuple[TechPattern, ...] = (
    # Languages
    _term("JavaScript"),
    _term("TypeScript"),
    _term("Python"),
    _term("Java"),
    _regex("Go", r"(?<![\w-])Go(?![\w-])"),
    _term("Go", "golang"),
    _term("Rust", exact_case=True),
    _term("C++", "c++", "cpp"),
    _term("C#", "c#", "csharp"),
    _term("PHP"),
    _term("Ruby"),
    _term("Swift", exact_case=True),
    _term("Kotlin"),
    _term("Scala"),
    _regex("R", r"(?<![\w&'-])R(?![\w&'-])"),
    _term("Perl"),
    _term("Objective-C", "objective-c", "objectivec", "objc"),
    # AWS
    _term("AWS", "aws", "amazon web services"),
    _term("RDS", "rds", "amazon rds", "aws rds"),
    _term("ElastiCache", "elasticache", "amazon elasticache", "aws elasticache"),
    _term("OpenSearch", "opensearch", "amazon opensearch", "aws opensearch"),
    _term("EC2", "ec2", "amazon ec2"),
    _term("Lambda", "Lambda", "AWS Lambda", exact_case=True),
    _term("ECS", "ecs", "amazon ecs"),
    _term("S3", "s3", "amazon s3"),
    _term("CloudFront"),
    _term("AWS Cognito", "cognito", "aws cognito", "amazon cognito"),
    _term("IAM"),
    _term("VPC"),
    _term("Route53", "route53", "route 53"),
    _term("CloudWatch"),
    _term("CloudFormation"),
    _term("Terraform"),
    _term("Elastic Beanstalk"),
    _term("SNS"),
    _term("SQS"),
    _term("API Gateway", "api gateway", "apigateway"),
    _term("Redshift", "redshift", "amazon redshift"),
    _term("AWS SageMaker", "sagemaker", "aws sagemaker", "amazon sagemaker"),
    # Google Cloud
    _term("GCP", "gcp", "google cloud", "google cloud platform"),
    _term("BigQuery", "bigquery", "google bigquery"),
    _term("Pub/Sub", "pub/sub", "pubsub", "google pub/sub", "google pubsub"),
    _term("Cloud Functions"),
    _term("Cloud Run"),
    _term("Cloud Storage"),
    _term("Cloud SQL"),
    _term("Cloud Build"),
    _term("Cloud Monitoring"),
    _term("Vertex AI", "vertex ai", "gcp vertex ai", "google vertex ai"),
    # Azure
    _term("Azure", "azure", "microsoft azure"),
    _term("Data Factory", "data factory", "azure data factory"),
    _term("Synapse Analytics", "synapse", "synapse analytics", "azure synapse"),
    _term("Azure Functions"),
    _term("Azure App Service"),
    _term("Azure Storage"),
    _term("Azure SQL"),
    _term("Azure DevOps"),
    _term("Azure Kubernetes Service", "azure kubernetes service", "aks"),
    _term("Azure ML", "azure ml", "azure machine learning", "azure machine learning studio"),
    # Web and backend frameworks
    _term("ReactJS", "reactjs", "react", "react.js"),
    _term("React Native", "react native", "reactnative"),
    _term("Next.js", "next.js", "nextjs"),
    _term("FastAPI"),
    _term("Flask"),
    _term("Django"),
    _term("Node.js", "node.js", "nodejs"),
    _term("Express", "Express", exact_case=True),
    _term("Express", "express.js", "expressjs"),
    _term("Vue.js", "vue", "vue.js", "vuejs"),
    _term("Angular"),
    _term("AngularJS"),
    _term("Svelte"),
    _term("Ember.js", "Ember", "Ember.js", exact_case=True),
    _term("Spring", "Spring", exact_case=True),
    _term("Spring Boot", "spring boot", "springboot"),
    _term("Laravel"),
    _term("Ruby on Rails", "ruby on rails"),
    _term("Ruby on Rails", "Rails", exact_case=True),
    _term("ASP.NET", "asp.net", "aspnet"),
    _term(".NET", ".net", "dotnet"),
    _term("AsyncIO", "asyncio", "async io", "python asyncio"),
    # Databases
    _term("PostgreSQL", "postgresql", "postgres"),
    _term("MySQL"),
    _term("Snowflake"),
    _term("MongoDB"),
    _term("DynamoDB"),
    _term("Redis"),
    _term("Cassandra"),
    _term("CouchDB"),
    _term("Elasticsearch", "elasticsearch", "elastic search"),
    _term("Elasticsearch", "Elastic", exact_case=True),
    _term("SQLite"),
    _term("Oracle", exact_case=True),
    _term("SQL Server", "sql server", "sqlserver"),
    _term("MariaDB"),
    _term("Neo4j"),
    _term("InfluxDB"),
    _term("TimescaleDB"),
    # Data processing and streaming
    _term("PySpark"),
    _term("Pandas"),
    _term("NumPy"),
    _term("Spark", "Spark", exact_case=True),
    _term("Spark", "apache spark"),
    _term("Airflow", "airflow", "apache airflow"),
    _term("dbt"),
    _term("Matplotlib"),
    _term("Seaborn"),
    _term("Plotly"),
    _term("Jupyter", "jupyter", "jupyter notebook"),
    _term("Databricks"),
    _term("Presto", exact_case=True),
    _term("Trino"),
    _term("Hadoop"),
    _term("Hive", exact_case=True),
    _term("Impala", exact_case=True),
    _term("Apache Kafka", "kafka", "apache kafka"),
    _term("RabbitMQ"),
    _term("Prefect", exact_case=True),
    _term("Luigi"),
    _term("Dagster"),
    # Machine learning and MLOps
    _term("Scikit-learn", "scikit-learn", "scikitlearn", "sklearn"),
    _term("TensorFlow"),
    _term("PyTorch"),
    _term("Keras"),
    _term("XGBoost"),
    _term("LightGBM"),
    _term("CatBoost"),
    _term("OpenCV"),
    _term("NLTK"),
    _term("spaCy"),
    _term("Transformers", exact_case=True),
    _term("Hugging Face", "hugging face", "huggingface"),
    _term("MLflow"),
    _term("Kubeflow"),
    _term("Weights & Biases", "weights & biases", "wandb"),
    _term("Comet", exact_case=True),
    _term("Neptune", exact_case=True),
    _term("Domino", exact_case=True),
    _term("Dataiku"),
    _term("H2O"),
    _term("RAPIDS", exact_case=True),
    _term("Ray", exact_case=True),
    _term("Horovod"),
    _term("Optuna"),
    _term("Hyperopt"),
    # Containers, CI/CD and version control
    _term("Docker"),
    _term("Kubernetes", "kubernetes", "k8s"),
    _term("Helm", exact_case=True),
    _term("Operators", "Operators", "Kubernetes Operators", exact_case=True),
    _term("GitHub Actions"),
    _term("Jenkins"),
    _term("ArgoCD", "argocd", "argo cd"),
    _term("GitLab CI"),
    _term("GitLab"),
    _term("CircleCI", "circleci", "circle ci"),
    _term("Travis CI", "travis ci"),
    _term("Travis CI", "Travis", exact_case=True),
    _term("TeamCity"),
    _term("Bamboo", exact_case=True),
    _term("GitHub"),
    _term("Git"),
    _term("Bitbucket"),
    # Observability and infrastructure
    _term("Prometheus"),
    _term("Grafana"),
    _term("Loki"),
    _term("Jaeger"),
    _term("Open Telemetry", "open telemetry", "opentelemetry"),
    _term("PagerDuty"),
    _term("Opsgenie"),
    _term("Datadog"),
    _term("New Relic", "new relic", "newrelic"),
    _term("Splunk"),
    _term("ELK Stack", "elk stack", "elastic stack"),
    _term("Logstash"),
    _term("Kibana"),
    _term("Ansible"),
    _term("Puppet", exact_case=True),
    _term("Chef", exact_case=True),
    _term("SaltStack"),
    _term("Consul", exact_case=True),
    _term("Nomad", exact_case=True),
    _term("Istio"),
    _term("Linkerd"),
    _term("Envoy", exact_case=True),
    _term("Nginx"),
    _term("Apache"),
    _term("Apache HTTP Server"),
    _term("Pulumi"),
    _term("Crossplane"),
    _term("Packer", exact_case=True),
    _term("Zipkin"),
    _term("Sentry", exact_case=True),
    _term("Rollbar"),
    _term("AppDynamics"),
    _term("Dynatrace"),
    # APIs and security
    _term("REST", "REST", "RESTful", exact_case=True),
    _term("GraphQL"),
    _term("gRPC"),
    _term("Vault", "Vault", "HashiCorp Vault", exact_case=True),
    _term("Let's Encrypt", "let's encrypt", "letsencrypt"),
    _term("Okta"),
    _term("Auth0"),
    _term("OAuth", "oauth", "oauth2"),
    _term("JWT", "jwt", "json web token"),
    _term("SAML"),
    _term("LDAP"),
    # Testing
    _term("Jest", exact_case=True),
    _term("Mocha", exact_case=True),
    _term("Chai", exact_case=True),
    _term("Cypress"),
    _term("Playwright"),
    _term("Selenium"),
    _term("pytest"),
    _term("unittest"),
    _term("JUnit"),
    _term("TestNG"),
    _term("Vitest"),
    # State management
    _term("Redux"),
    _term("MobX"),
    _term("Zustand"),
    _term("Pinia"),
    _term("Vuex"),
    # Build tools
    _term("Webpack"),
    _term("Vite"),
    _term("Rollup", exact_case=True),
    _term("Parcel", exact_case=True),
    _term("esbuild"),
    _term("Babel", exact_case=True),
    _term("ESLint"),
    _term("Prettier", exact_case=True),
    # Package managers
    _term("npm"),
    _term("Yarn", exact_case=True),
    _term("pnpm"),
    _term("pip"),
    _term("Conda"),
    _term("Poetry", exact_case=True),
    _term("Maven"),
    _term("Gradle"),
    _term("Composer", exact_case=True),
    _term("Cargo", exact_case=True),
    # Collaboration
    _term("Slack"),
    _term("Jira"),
    _term("Confluence"),
    _term("Notion", exact_case=True),
    _term("Asana"),
    _term("Trello"),
    _term("Figma"),
    _term("Sketch", exact_case=True),
    _term("Zoom", exact_case=True),
    _term("Microsoft Teams", "microsoft teams"),
    _term("Microsoft Teams", "Teams", exact_case=True),
    # Styling
    _term("CSS"),
    _term("SASS"),
    _term("SCSS"),
    _term("Less", exact_case=True),
    _term("Styled Components", "styled-components", "styled components"),
    _term("Emotion", exact_case=True),
    _term("Tailwind CSS", "tailwind", "tailwind css", "tailwindcss"),
    _term("Bootstrap"),
    _term("Material-UI", "material-ui", "material ui"),
    _term("Material-UI", "MUI", exact_case=True),
    _term("Ant Design", "ant design", "antd"),
    # Analytics and BI
    _term("Tableau"),
    _term("Power BI", "power bi", "powerbi"),
    _regex("Excel", r"(?<!\w)(?:Microsoft\s+)?(?:Excel|MS\s+Excel)(?!\w)(?!\s+(?:in|at)\b)"),
    _term("SQL"),
    _term("Qlik"),
    _term("QlikView"),
    _term("QlikSense", "qliksense", "qlik sense"),
    _term("Looker"),
    _term("Metabase"),
    _term("Apache Superset", "Superset", exact_case=True),
    _term("Apache Superset", "apache superset"),
    _term("SAS"),
    _term("SPSS"),
    _term("Stata"),
    _term("MATLAB"),
    _term("Google Analytics", "google analytics", "googleanalytics"),
    _term("Amplitude", exact_case=True),
    _term("Mixpanel"),
    _term("Segment", exact_case=True),
    _term("Alteryx"),
    _term("KNIME"),
    _term("RapidMiner"),
    # Mobile
    _term("Flutter"),
    _term("Ionic", exact_case=True),
    _term("Xamarin"),
    _term("Cordova"),
    _term("PhoneGap"),
    _term("Android"),
    _term("iOS"),
)

# Cloud service names that are scanned even when the full table is skipped
_CORE_CLOUD_NAMES = frozenset(
    {
        "RDS",
        "ElastiCache",
        "OpenSearch",
        "GCP",
        "BigQuery",
        "Pub/Sub",
        "Azure",
        "Data Factory",
        "Synapse Analytics",
        "AsyncIO",
    }
)
CORE_CLOUD_PATTERNS: tuple[TechPattern, ...] = tuple(
    p for p in TECH_PATTERNS if p.name in _CORE_CLOUD_NAMES
)

# =============================================================================
# COMPOUND AND PARENTHETICAL PATTERNS
# =============================================================================

COMPOUND_PATTERNS: tuple[CompoundPattern, ...] = (
    CompoundPattern(
        re.compile(r"(?<!\w)javascript\s*/\s*typescript(?!\w)", re.IGNORECASE),
        ("JavaScript", "TypeScript"),
    ),
    CompoundPattern(
        re.compile(r"(?<!\w)typescript\s*/\s*javascript(?!\w)", re.IGNORECASE),
        ("TypeScript", "JavaScript"),
    ),
    CompoundPattern(
        re.compile(r"(?<!\w)html\d?\s*/\s*css\d?(?!\w)", re.IGNORECASE),
        ("HTML", "CSS"),
    ),
    CompoundPattern(
        re.compile(r"(?<!\w)agile\s*/\s*scrum(?!\w)", re.IGNORECASE),
        ("Agile", "Scrum"),
    ),
    CompoundPattern(
        re.compile(r"(?<!\w)ci\s*/\s*cd(?!\w)", re.IGNORECASE),
        ("CI/CD",),
    ),
)

CLOUD_PLATFORMS = {"aws": "AWS", "gcp": "GCP", "azure": "Azure"}

_CLOUD = r"AWS|GCP|Azure"
_LANGUAGES = r"Python|JavaScript|TypeScript|Java|Go|Rust|C\+\+|C#|PHP|Ruby|Swift|Kotlin|Scala|R"

PAREN_PATTERNS: tuple[re.Pattern, ...] = (
    # "AWS services (EC2, S3)"
    re.compile(
        rf"(?<!\w)(?P<platform>{_CLOUD})\s+services\s*\((?P<services>[^)]+)\)", re.IGNORECASE
    ),
    # "familiarity with GCP (BigQuery, Pub/Sub)"
    re.compile(
        rf"(?:familiarity|experience|knowledge|proficiency|expertise)\s+(?:with|of|in)\s+"
        rf"(?P<platform>{_CLOUD})\s*\((?P<services>[^)]+)\)",
        re.IGNORECASE,
    ),
    # "AWS (EC2, Lambda, RDS)"
    re.compile(rf"(?<!\w)(?P<platform>{_CLOUD})\s*\((?P<services>[^)]+)\)", re.IGNORECASE),
    # "Python (Django, FastAPI)"
    re.compile(rf"(?<![\w#+])(?P<platform>{_LANGUAGES})\s*\((?P<services>[^)]+)\)"),
)

# A parenthetical item with no known mapping is kept only if it looks like a name
PROPER_NOUN = re.compile(r"^[A-Z][a-zA-Z0-9\s/\-&]+$")

# Leading conjunctions stripped from parenthetical list items ("and S3")
LIST_CONJUNCTION = re.compile(r"^(?:and|or|&)\s+", re.IGNORECASE)

SERVICE_MAP = {
    "rds": "RDS",
    "amazon rds": "RDS",
    "elasticache": "ElastiCache",
    "amazon elasticache": "ElastiCache",
    "opensearch": "OpenSearch",
    "amazon opensearch": "OpenSearch",
    "aws opensearch": "OpenSearch",
    "ec2": "EC2",
    "amazon ec2": "EC2",
    "lambda": "Lambda",
    "aws lambda": "Lambda",
    "ecs": "ECS",
    "amazon ecs": "ECS",
    "s3": "S3",
    "amazon s3": "S3",
    "cloudfront": "CloudFront",
    "amazon cloudfront": "CloudFront",
    "bigquery": "BigQuery",
    "google bigquery": "BigQuery",
    "pub/sub": "Pub/Sub",
    "pubsub": "Pub/Sub",
    "google pub/sub": "Pub/Sub",
    "google pubsub": "Pub/Sub",
    "data factory": "Data Factory",
    "azure data factory": "Data Factory",
    "synapse analytics": "Synapse Analytics",
    "synapse": "Synapse Analytics",
    "azure synapse": "Synapse Analytics",
    "azure synapse analytics": "Synapse Analytics",
    "asyncio": "AsyncIO",
    "async io": "AsyncIO",
    "python asyncio": "AsyncIO",
    "operators": "Operators",
    "kubernetes operators": "Operators",
    "k8s operators": "Operators",
}


def _build_canonical_names() -> dict[str, str]:
    names: dict[str, str] = {}
    for pattern in TECH_PATTERNS:
        names.setdefault(pattern.name.lower(), pattern.name)
        for phrase in pattern.phrases:
            names.setdefault(" ".join(phrase.lower().split()), pattern.name)
    for alias, name in SERVICE_MAP.items():
        names.setdefault(alias, name)
    return names


# Lowercase alias -> canonical display name
CANONICAL_NAMES: dict[str, str] = _build_canonical_names()

# =============================================================================
# FALSE POSITIVES
# =============================================================================

FALSE_POSITIVES = frozenset(
    {
        # Employment arrangements
        "on-site",
        "onsite",
        "remote",
        "hybrid",
        "full-time",
        "fulltime",
        "part-time",
        "parttime",
        "contract",
        # Compliance regimes
        "gdpr",
        "hipaa",
        "soc2",
        "soc 2",
        "pci",
        "pci dss",
        "iso 27001",
        # Industries and phrases mistaken for tools
        "healthcare",
        "pharmaceutical consulting",
        "management consulting",
        "hospital systems",
        "payers",
        "enterprise level data-analytical solutions",
        "enterprise level",
        "data-analytical solutions",
    }
)

SIBLING_RULES: tuple[SiblingRule, ...] = (
    SiblingRule("apache", specific_prefix="apache "),
    SiblingRule("github", specific_terms=("github actions",)),
    SiblingRule("kafka", specific_terms=("apache kafka",)),
)

MAX_TERM_CHARS = 40
MAX_TERM_WORDS = 5

LONG_NAME_ALLOWLIST = (
    "azure synapse analytics",
    "azure data factory",
    "google cloud platform",
    "amazon web services",
)

# =============================================================================
# LEXICAL CLASSIFIER
# =============================================================================


@dataclass(frozen=True)
class ClassifierTable:
    """Ordered category rules; the first matching rule wins."""

    rules: tuple[CategoryRule, ...] = field(default_factory=tuple)

    def classify(self, term: str) -> str | None:
        for rule in self.rules:
            if rule.matches(term):
                return rule.category
        return None


CLASSIFIER = ClassifierTable(
    rules=(
        CategoryRule(
            "languages",
            (
                "javascript",
                "typescript",
                "python",
                "java",
                "go",
                "rust",
                "c++",
                "c#",
                "php",
                "ruby",
                "swift",
                "kotlin",
                "scala",
                "r",
                "perl",
            ),
            exact=True,
        ),
        CategoryRule(
            "frameworks",
            (
                "async",
                "reactjs",
                "react",
                "next.js",
                "vue",
                "angular",
                "fastapi",
                "flask",
                "django",
                "express",
                "node.js",
            ),
        ),
        CategoryRule(
            "devOps",
            (
                "aws",
                "gcp",
                "azure",
                "ec2",
                "lambda",
                "ecs",
                "s3",
                "cloudfront",
                "rds",
                "elasticache",
                "opensearch",
                "bigquery",
                "pub/sub",
                "pubsub",
                "data factory",
                "synapse analytics",
                "synapse",
                "docker",
                "kubernetes",
                "helm",
                "operators",
                "github actions",
                "jenkins",
                "argocd",
                "prometheus",
                "grafana",
                "loki",
                "jaeger",
                "open telemetry",
                "vault",
                "aws cognito",
            ),
        ),
        CategoryRule(
            "databases",
            (
                "postgresql",
                "mysql",
                "mongodb",
                "redis",
                "dynamodb",
                "snowflake",
                "cassandra",
                "elasticsearch",
                "oracle",
                "sql server",
            ),
        ),
        CategoryRule(
            "data",
            ("spark", "pyspark", "pandas", "numpy", "airflow", "dbt", "kafka", "rabbitmq"),
        ),
    )
)
