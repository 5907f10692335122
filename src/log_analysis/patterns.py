"""Default error pattern table for CI logs.

Order matters: the first match wins, so more specific and more severe
patterns come first. Critical runtime failures, then build and
dependency errors, test failures, container problems, network problems,
runtime errors, and finally the generic error and warning tokens.
"""

from .models import Category, ErrorPattern, PatternTable, Severity

_C = ErrorPattern.compile

DEFAULT_PATTERNS = PatternTable(
    patterns=(
        # Critical runtime failures
        _C(
            "panic",
            r"(panic\s*:|runtime panic|panic.*occurred)",
            Category.RUNTIME,
            Severity.CRITICAL,
            "Runtime panic",
        ),
        _C(
            "fatal_error",
            r"(fatal\s*:|fatal error|fatal.*occurred)",
            Category.RUNTIME,
            Severity.CRITICAL,
            "Fatal error",
        ),
        _C(
            "segmentation_fault",
            r"(segmentation fault|segfault|sigsegv|signal\s*11\b)",
            Category.RUNTIME,
            Severity.CRITICAL,
            "Segmentation fault",
        ),
        # Build and compile errors
        _C(
            "compilation_failure",
            r"(compilation failed|compile error|failed to compile|compilation error|compil\w*\s+failed)",
            Category.BUILD,
            Severity.ERROR,
            "Compilation failure",
        ),
        _C(
            "build_failed",
            r"(build failed|build error|failed to build)",
            Category.BUILD,
            Severity.ERROR,
            "Build failure",
        ),
        _C(
            "go_error",
            r"(\.go:\d+:\d+:|cannot find package|go build.*failed)",
            Category.BUILD,
            Severity.ERROR,
            "Go compiler error",
        ),
        _C(
            "npm_error",
            r"(npm err!?|npm error|npm.*failed|yarn error)",
            Category.BUILD,
            Severity.ERROR,
            "npm or yarn failure",
        ),
        _C(
            "module_not_found",
            r"(module not found|package not found|cannot find module|no module named)",
            Category.BUILD,
            Severity.ERROR,
            "Missing module or package",
        ),
        _C(
            "dependency_error",
            r"(dependency.*error|failed to.*dependenc|missing dependency|could not resolve dependencies)",
            Category.BUILD,
            Severity.ERROR,
            "Dependency resolution failure",
        ),
        # Test failures
        _C(
            "test_assertion",
            r"(assertion\s*error|assert.*failed|expected.*got|should.*but)",
            Category.TEST,
            Severity.ERROR,
            "Assertion failure",
        ),
        _C(
            "test_failure",
            r"(test failed|tests failed|fail:|failed:|test.*failed|expect.*failed)",
            Category.TEST,
            Severity.ERROR,
            "Test failure",
        ),
        _C(
            "test_timeout",
            r"(test.*timeout|timeout.*test|test.*timed out)",
            Category.TEST,
            Severity.ERROR,
            "Test timeout",
        ),
        # Container errors
        _C(
            "image_not_found",
            r"(image not found|no such image|pull.*failed|image.*does not exist|manifest unknown)",
            Category.CONTAINER,
            Severity.ERROR,
            "Container image not found",
        ),
        _C(
            "dockerfile_error",
            r"(dockerfile.*error|failed.*dockerfile|invalid.*dockerfile)",
            Category.CONTAINER,
            Severity.ERROR,
            "Dockerfile error",
        ),
        _C(
            "container_killed",
            r"(oomkilled|container.*killed|exceeded.*memory limit)",
            Category.CONTAINER,
            Severity.ERROR,
            "Container killed, usually out of memory",
        ),
        _C(
            "docker_error",
            r"(docker\s*:\s*error|docker.*failed|container.*failed|error response from daemon)",
            Category.CONTAINER,
            Severity.ERROR,
            "Docker failure",
        ),
        # Network errors
        _C(
            "connection_error",
            r"(connection.*failed|failed to connect|connection.*refused|connection.*reset|timeout.*connect)",
            Category.NETWORK,
            Severity.ERROR,
            "Connection failure",
        ),
        _C(
            "dns_error",
            r"(could not resolve host|name or service not known|temporary failure in name resolution|no such host)",
            Category.NETWORK,
            Severity.ERROR,
            "DNS resolution failure",
        ),
        _C(
            "http_error",
            r"(http.*error|status.*\b[45]\d\d\b|request.*failed|api.*error)",
            Category.NETWORK,
            Severity.ERROR,
            "HTTP request failure",
        ),
        # Runtime errors
        _C(
            "exit_code",
            r"(exit code\s*[1-9]\d*|exited with (code |status )?[1-9]\d*|process.*exit.*\b[1-9]\d*)",
            Category.RUNTIME,
            Severity.ERROR,
            "Non-zero exit code",
        ),
        _C(
            "python_error",
            r"(traceback \(most recent call last\)|\w+error: |syntaxerror|importerror|modulenotfounderror)",
            Category.RUNTIME,
            Severity.ERROR,
            "Python exception",
        ),
        _C(
            "java_error",
            r"(java.*exception|exception in thread|java.*error)",
            Category.RUNTIME,
            Severity.ERROR,
            "Java exception",
        ),
        # Generic tokens
        _C(
            "deprecation_warning",
            r"(deprecat.*warning|deprecated|deprecation)",
            Category.GENERIC,
            Severity.WARNING,
            "Deprecation notice",
        ),
        _C(
            "generic_warning",
            r"(warning\s*:|warn\s*:|\bwarning\b)",
            Category.GENERIC,
            Severity.WARNING,
            "Warning",
        ),
        _C(
            "generic_error",
            r"(\berror\s*:\s*\S|\[error\]|^\s*error\b)",
            Category.GENERIC,
            Severity.ERROR,
            "Generic error",
        ),
    )
)
