"""Tests for commands module"""
import io
import os
import tempfile
import shutil
import logging
import pytest
from unittest.mock import Mock
from commands import SEPARATOR_LINE, CommandLoop, browser_command, is_existing_path, open_folder
from processors.batch_mover import BatchResult, MoveExecutor


class TestOpenFolder:
    """Test suite for open_folder function"""

    def test_browser_command_per_platform(self):
        assert browser_command("C:\\x", platform="win32") == ["explorer", "C:\\x"]
        assert browser_command("/x", platform="darwin") == ["open", "/x"]
        assert browser_command("/x", platform="linux") == ["xdg-open", "/x"]

    def test_open_folder_starts_process(self):
        popen = Mock()
        logger = Mock(spec=logging.Logger)

        assert open_folder("/some/dir", logger=logger, popen=popen)

        popen.assert_called_once_with(browser_command("/some/dir"))
        assert logger.info.called

    def test_open_folder_failure(self):
        popen = Mock(side_effect=FileNotFoundError("no browser"))
        logger = Mock(spec=logging.Logger)

        assert not open_folder("/some/dir", logger=logger, popen=popen)
        assert logger.error.called

    def test_is_existing_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert is_existing_path(tmpdir)
            assert not is_existing_path(os.path.join(tmpdir, "missing"))
            assert not is_existing_path("bad\0path")


class TestCommandLoop:
    """Test suite for CommandLoop"""

    @pytest.fixture
    def env(self):
        root = tempfile.mkdtemp()
        source = os.path.join(root, "inbox")
        staging = os.path.join(root, "staging")
        os.makedirs(source)
        os.makedirs(staging)
        config_path = os.path.join(root, "paths.yaml")
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(f"'Default source path': '{source}'\nls: '{os.path.join(root, 'landscapes')}'\n")
        executor = Mock(spec=MoveExecutor)
        executor.move_batch.return_value = BatchResult(submitted=1, moved=1)
        logger = Mock(spec=logging.Logger)
        yield root, config_path, staging, executor, logger
        shutil.rmtree(root, ignore_errors=True)

    def make_loop(self, env, text="", opener=None):
        root, config_path, staging, executor, logger = env
        output = io.StringIO()
        loop = CommandLoop(
            config_path,
            executor,
            staging,
            stream=io.StringIO(text),
            output=output,
            opener=opener or Mock(),
            logger=logger,
        )
        return loop, output

    def test_known_code_moves_batch(self, env):
        root, _, _, executor, _ = env
        loop, output = self.make_loop(env)

        result = loop.handle("ls")

        executor.move_batch.assert_called_once_with(os.path.join(root, "inbox"), os.path.join(root, "landscapes"))
        assert result.moved == 1
        assert SEPARATOR_LINE in output.getvalue()

    def test_unknown_code_is_logged(self, env):
        _, _, _, executor, logger = env
        loop, _ = self.make_loop(env)

        assert loop.handle("zz") is None

        executor.move_batch.assert_not_called()
        assert any("Unknown target path code" in str(call) for call in logger.error.call_args_list)

    def test_missing_default_source(self, env):
        _, config_path, _, executor, logger = env
        with open(config_path, "w", encoding="utf-8") as f:
            f.write('"Default source path": ""\nls: /x\n')
        loop, _ = self.make_loop(env)

        assert loop.handle("ls") is None

        executor.move_batch.assert_not_called()
        assert logger.error.called

    def test_config_error_keeps_loop_alive(self, env):
        _, config_path, _, executor, logger = env
        os.remove(config_path)
        loop, _ = self.make_loop(env, text="ls\nls\n")

        loop.run()

        executor.move_batch.assert_not_called()
        assert logger.error.call_count == 2

    def test_existing_path_opens_folder(self, env):
        root, _, _, executor, _ = env
        opener = Mock()
        loop, _ = self.make_loop(env, opener=opener)

        loop.handle(root)

        opener.assert_called_once()
        assert opener.call_args[0][0] == root
        executor.move_batch.assert_not_called()

    def test_count_command(self, env):
        _, _, staging, _, _ = env
        with open(os.path.join(staging, "a.png"), "w") as f:
            f.write("a")
        loop, output = self.make_loop(env)

        loop.handle("count")

        assert "Remaining unclassified images: 1" in output.getvalue()

    def test_help_lists_codes(self, env):
        loop, output = self.make_loop(env)
        loop.handle("help")
        assert "ls:" in output.getvalue()

    def test_blank_input_ignored(self, env):
        _, _, _, executor, _ = env
        loop, output = self.make_loop(env)
        assert loop.handle("") is None
        executor.move_batch.assert_not_called()
        assert output.getvalue() == ""

    def test_run_stops_at_end_of_input(self, env):
        _, _, _, executor, _ = env
        loop, _ = self.make_loop(env, text="ls\n\nls")

        loop.run()

        assert executor.move_batch.call_count == 2

    def test_help_lists_builtins(self, env):
        loop, output = self.make_loop(env)
        loop.handle("help")
        assert "collect" in output.getvalue()

    def test_collect_writes_gallery_folders(self, env):
        root, config_path, _, executor, _ = env
        gallery = os.path.join(root, "gallery")
        os.makedirs(os.path.join(gallery, "portraits", "2024"))
        os.makedirs(os.path.join(gallery, "landscapes"))
        with open(config_path, "a", encoding="utf-8") as f:
            f.write(f"'Gallery path': '{gallery}'\n")
        loop, output = self.make_loop(env)

        loop.handle("collect")

        with open(os.path.join(root, "directories.txt"), encoding="utf-8") as f:
            lines = f.read().splitlines()
        assert lines == [
            os.path.join(gallery, "landscapes"),
            os.path.join(gallery, "portraits"),
            os.path.join(gallery, "portraits", "2024"),
        ]
        assert "Collected 3 folder(s)" in output.getvalue()
        executor.move_batch.assert_not_called()

    def test_collect_to_configured_file(self, env):
        root, config_path, staging, executor, logger = env
        gallery = os.path.join(root, "gallery")
        os.makedirs(os.path.join(gallery, "sketches"))
        with open(config_path, "a", encoding="utf-8") as f:
            f.write(f"'Gallery path': '{gallery}'\n")
        out_file = os.path.join(root, "list.txt")
        loop = CommandLoop(
            config_path, executor, staging, stream=io.StringIO(), output=io.StringIO(),
            logger=logger, collection_file=out_file,
        )

        assert loop.collect() == 1
        assert os.path.exists(out_file)
        assert not os.path.exists(os.path.join(root, "directories.txt"))

    def test_collect_without_gallery_path(self, env):
        root, _, _, _, logger = env
        loop, _ = self.make_loop(env)

        loop.handle("collect")

        assert any("Gallery path" in str(call) for call in logger.error.call_args_list)
        assert not os.path.exists(os.path.join(root, "directories.txt"))

    def test_collect_missing_gallery_is_logged(self, env):
        root, config_path, _, _, logger = env
        with open(config_path, "a", encoding="utf-8") as f:
            f.write(f"'Gallery path': '{os.path.join(root, 'nowhere')}'\n")
        loop, output = self.make_loop(env)

        loop.handle("collect")

        assert logger.error.called
        assert SEPARATOR_LINE in output.getvalue()
