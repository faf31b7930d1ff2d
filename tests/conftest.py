"""
Test configuration for yuzu-extractor.

Provides reader-like markup samples, fast configurations and in-memory
content scopes so every component can be exercised without a browser.
"""

# Standard library imports
from pathlib import Path
from typing import Generator

# Third-party imports
import pytest

# Local imports
from tests.helpers import FakeScope
from yuzu_extractor.config import Config, ReadinessConfig
from yuzu_extractor.config.config import PRINT_WARNING_PHRASE
from yuzu_extractor.protocols import StyleSource

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Markup Fixtures
# ============================================================================


SAMPLE_BODY = f"""
<nav class="reader-nav"><a href="/toc">Contents</a></nav>
<div class="toolbar-top"><button>Highlight</button></div>
<div class="print-banner"><p>{PRINT_WARNING_PHRASE}</p></div>
<script>window.readerBoot();</script>
<div style="display: none"><p>Hidden chrome</p></div>
<div style="display:none"><img src="figures/pending.png" alt="Pending figure"></div>
<section class="chapter">
  <h2>1.2 Limits</h2>
  <p class="para">A sequence <em>converges</em> when its terms approach a limit.
    <mjx-container class="MathJax" jax="CHTML"><mjx-math>x2</mjx-math>
      <mjx-assistive-mml><math><msup><mi>x</mi><mn>2</mn></msup></math></mjx-assistive-mml>
    </mjx-container>
  </p>
  <figure>
    <img src="figures/limit.png" alt="Limit diagram">
    <figcaption>Figure 1.3 The limit</figcaption>
  </figure>
  <ul><li>First</li><li>Second</li></ul>
  <table>
    <tr><th>n</th><th>a_n</th></tr>
    <tr><td>1</td><td>0.5</td></tr>
  </table>
  <div style="background: url(images/paper.png)">Margin note</div>
</section>
"""


@pytest.fixture
def sample_body() -> str:
    """Reader body markup with chrome, a print banner, math and figures."""
    return SAMPLE_BODY


@pytest.fixture
def sample_stylesheets():
    """Style sources as a reader content frame exposes them."""
    return [
        StyleSource(node="style", text="body { margin: 0 } @media print { body > * { display: none !important } }"),
        StyleSource(node="style", media="print", text="body { display: none }"),
        StyleSource(node="link", href="https://cdn.example.com/reader.css", rules=[".para { line-height: 1.4; }"]),
        StyleSource(node="link", href="https://fonts.example.net/fonts.css", rules=None),
    ]


@pytest.fixture
def content_scope(sample_body, sample_stylesheets) -> FakeScope:
    """Content frame scope holding the sample body."""
    return FakeScope(sample_body, title="Chapter 1", stylesheets=sample_stylesheets)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fast_readiness() -> ReadinessConfig:
    """Readiness settings with every wait shrunk to milliseconds."""
    return ReadinessConfig(
        default_step_delay_ms=0,
        poll_ceiling_seconds=0.2,
        poll_interval_ms=1,
        top_pause_ms=0,
        typeset_timeout_seconds=0.05,
        image_timeout_seconds=0.05,
        settle_ms=0,
    )


@pytest.fixture
def test_config(fast_readiness) -> Config:
    """Configuration with fast readiness and image inlining disabled."""
    config = Config()
    config.readiness = fast_readiness
    config.assets.enabled = False
    return config


@pytest.fixture
def config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """A YAML configuration file overriding a few settings."""
    path = tmp_path / "yuzu-extractor.yaml"
    path.write_text(
        "extraction:\n"
        "  default_title: Untitled Section\n"
        "readiness:\n"
        "  step_px: 400\n"
        "assets:\n"
        "  max_concurrency: 2\n",
        encoding="utf-8",
    )
    yield path
