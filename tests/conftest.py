"""Shared test fixtures for all test modules."""

from textwrap import dedent

import pytest

from org_outline.parser import OrgOutline


@pytest.fixture(autouse=True)
def isolated_log_file(tmp_path, monkeypatch):
    """
    Keep structured logs out of the user's cache directory.

    configure_logging() is called by every CLI invocation; pointing
    ORGPOST_LOG_FILE at the test's tmp_path keeps runs independent.
    """
    log_file = tmp_path / "logs" / "orgpost.log"
    monkeypatch.setenv("ORGPOST_LOG_FILE", str(log_file))
    monkeypatch.delenv("ORGPOST_LOG_LEVEL", raising=False)
    return log_file


@pytest.fixture
def parse():
    """Parse dedented org text into an OrgOutline."""

    def _parse(text: str, **kwargs) -> OrgOutline:
        return OrgOutline.parse(dedent(text), **kwargs)

    return _parse


@pytest.fixture
def blog_org():
    """Two-post outline in the shape of a typical all-posts.org file."""
    return dedent(
        """\
        #+HUGO_BASE_DIR: ../
        #+HUGO_SECTION: posts
        #+TODO: TODO DRAFT | DONE

        * Programming                                               :@programming:
        ** DONE Hello World                                            :python:go:
        CLOSED: [2020-01-15 Wed 10:30]
        :PROPERTIES:
        :EXPORT_FILE_NAME: hello-world
        :END:
        First post with *bold* text.

        #+BEGIN_SRC python
        def greet():
            return "=not code=  *not bold*"
        #+END_SRC

        ** TODO Second Post                                               :rust:
        :PROPERTIES:
        :EXPORT_FILE_NAME: second-post
        :EXPORT_DESCRIPTION: Still writing this one
        :END:
        Work in progress.

        * Notes                                                         :noexport:
        ** Private
        :PROPERTIES:
        :EXPORT_FILE_NAME: private
        :END:
        Never exported.

        # Local Variables:
        # eval: (org-hugo-auto-export-mode)
        # End:
        """
    )
