"""
Source tree lookup tests
"""

from unittest.mock import patch

from buildstrap.vcs import find_git_executable, find_source_root


class TestFindSourceRoot:
    def test_walks_up_to_marker(self, tmp_path):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_source_root(nested) == tmp_path.resolve()

    def test_start_at_file(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: elsewhere")
        source_file = tmp_path / "setup.cfg"
        source_file.write_text("")

        assert find_source_root(source_file) == tmp_path.resolve()


class TestFindGitExecutable:
    def test_configured_path(self, tmp_path):
        git = tmp_path / "git"
        git.write_text("")
        assert find_git_executable(str(git)) == str(git)

    def test_falls_back_to_path_lookup(self, tmp_path):
        with patch("buildstrap.vcs.shutil.which", return_value="/usr/bin/git") as which:
            assert find_git_executable(str(tmp_path / "missing")) == "/usr/bin/git"
        which.assert_called_once_with("git")
