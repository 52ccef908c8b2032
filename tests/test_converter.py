"""Tests for mirrordocs.converter."""

from __future__ import annotations

from pathlib import Path

import pytest

from mirrordocs.application import build_src_tree
from mirrordocs.converter import BuildReport, ErrorPolicy, TreeConverter
from mirrordocs.errors import PerDocumentError, RenderError, StructuralError
from mirrordocs.node_data import ConversionInfo, NodeData, SrcFromString
from mirrordocs.pathtree import PathTree


def _converter(src_dir: Path, dst_dir: Path, renderer, **kwargs) -> TreeConverter:
    src_top = build_src_tree(src_dir, [".md"])
    return TreeConverter(src_top, dst_dir, renderer, **kwargs)


class RecordingBuilder:
    """Pre/post builder remembering the order it was called in."""

    def __init__(self, name: str, calls: list[str]) -> None:
        self.name = name
        self.calls = calls

    def on_prebuild(self, src_tree, dst_tree, converter):
        self.calls.append(f"pre:{self.name}")

    def on_postbuild(self, src_tree, dst_tree, converter):
        self.calls.append(f"post:{self.name}")


class UpperCase:
    def process(self, src_node, source, context):
        return source.upper()


class PageGenerator:
    """Post-builder converting one generated page into the destination root."""

    def __init__(self, text: str) -> None:
        self.text = text

    def on_postbuild(self, src_tree, dst_tree, converter):
        src_node = PathTree("/virtual/page.md", SrcFromString(self.text)).node("page.md")
        converter.convert(src_node, dst_tree.add_descendants("page.out"))


class TestBuild:
    """Converting a whole tree."""

    def test_writes_mirrored_tree(self, doc_tree, tmp_path, fake_renderer):
        """Each source document is written to the mirrored destination path."""
        dst = tmp_path / "dst"
        report = _converter(doc_tree, dst, fake_renderer).run()

        assert report.succeeded == 2
        assert report.failed == 0
        assert bool(report)
        assert (dst / "file1.out").read_text().startswith("# Doc 1")
        assert (dst / "sub" / "file2.out").exists()
        assert not (dst / "sub" / "notes.out").exists()

    def test_dst_nodes_carry_conversion_info(self, doc_tree, tmp_path, fake_renderer):
        """Destination leaves get NodeData with the conversion outcome."""
        conv = _converter(doc_tree, tmp_path / "dst", fake_renderer)
        conv.run()

        node = conv.dst_top.node("sub/file2.out")
        assert isinstance(node.data, NodeData)
        assert node.data.converted
        assert node.data.title == "Doc 2"
        assert node.data.docid == "D-2"
        assert str(node.data.conversion.dst_rel_path) == "sub/file2.out"
        assert str(node.data.conversion.src_rel_path) == "sub/file2.md"

    def test_write_files_false_keeps_build_in_memory(self, doc_tree, tmp_path, fake_renderer):
        """With write_files=False nothing is written, but the tree is built."""
        dst = tmp_path / "dst"
        conv = _converter(doc_tree, dst, fake_renderer, write_files=False)
        report = conv.run()

        assert report.succeeded == 2
        assert not dst.exists()
        assert conv.dst_top.find("file1.out") is not None

    def test_failure_is_recorded_and_build_continues(self, make_docs, tmp_path, fake_renderer):
        """A failing document does not stop the other documents."""
        src = make_docs(tmp_path / "src", {"a.md": "# A\nFAIL\n", "b.md": "# B\n"})
        conv = _converter(src, tmp_path / "dst", fake_renderer)
        report = conv.run()

        assert report.succeeded == 1
        assert report.failed == 1
        assert not report
        assert report.total == 2
        failed = conv.dst_top.node("a.out").data
        assert not failed.converted
        assert "fake failure" in failed.conversion.error_msg
        assert report.failures == [failed.conversion]
        assert (tmp_path / "dst" / "b.out").exists()

    def test_abort_policy_raises(self, make_docs, tmp_path, fake_renderer):
        """With the abort policy the first failure propagates."""
        src = make_docs(tmp_path / "src", {"a.md": "FAIL\n", "b.md": "# B\n"})
        conv = _converter(src, tmp_path / "dst", fake_renderer, error_policy=ErrorPolicy.ABORT)
        with pytest.raises(RenderError):
            conv.run()
        assert conv.report.failed == 1

    def test_abort_policy_wraps_os_errors(self, make_docs, tmp_path, fake_renderer):
        """Non mirrordocs errors are wrapped in PerDocumentError when aborting."""
        src = make_docs(tmp_path / "src", {"a.md": "# A\n"})
        conv = _converter(src, tmp_path / "dst", fake_renderer, error_policy=ErrorPolicy.ABORT)
        (src / "a.md").unlink()
        with pytest.raises(PerDocumentError):
            conv.run()

    def test_callbacks(self, make_docs, tmp_path, fake_renderer):
        """on_success and on_failure fire once per document."""
        src = make_docs(tmp_path / "src", {"a.md": "# A\n", "b.md": "FAIL\n"})
        successes, failures = [], []
        conv = _converter(
            src,
            tmp_path / "dst",
            fake_renderer,
            on_success=lambda s, d, info: successes.append((s.segment, info.title)),
            on_failure=lambda s, d, err: failures.append((s.segment, type(err))),
        )
        conv.run()

        assert successes == [("a.md", "A")]
        assert failures == [("b.md", RenderError)]

    def test_warnings_are_logged(self, make_docs, tmp_path, fake_renderer, caplog):
        """Renderer warnings are logged and kept in the conversion info."""
        src = make_docs(tmp_path / "src", {"a.md": "# A\nWARN\n"})
        conv = _converter(src, tmp_path / "dst", fake_renderer)
        with caplog.at_level("WARNING"):
            conv.run()
        assert "fake warning" in caplog.text
        assert conv.dst_top.node("a.out").data.conversion.warnings == ["fake warning"]

    def test_doc_attributes_are_defaults(self, make_docs, tmp_path, fake_renderer):
        """Header attributes override the converter-wide attributes."""
        src = make_docs(tmp_path / "src", {"a.md": "# A\n:lang: sv\n"})
        conv = _converter(
            src, tmp_path / "dst", fake_renderer, doc_attributes={"lang": "en", "org": "x"}
        )
        conv.run()
        attrs = conv.dst_top.node("a.out").data.conversion.attributes
        assert attrs == {"lang": "sv", "org": "x"}


class TestPhases:
    """The three build phases."""

    def test_extension_order(self, doc_tree, tmp_path, fake_renderer):
        """Pre-builders run before, post-builders after the documents."""
        calls: list[str] = []
        conv = _converter(
            doc_tree,
            tmp_path / "dst",
            fake_renderer,
            pre_builders=[RecordingBuilder("one", calls), RecordingBuilder("two", calls)],
            post_builders=[RecordingBuilder("three", calls)],
            on_success=lambda s, d, info: calls.append("doc"),
        )
        conv.run()
        assert calls == ["pre:one", "pre:two", "doc", "doc", "post:three"]

    def test_out_of_order_phase_raises(self, doc_tree, tmp_path, fake_renderer):
        """Running build before pre_build is a structural error."""
        conv = _converter(doc_tree, tmp_path / "dst", fake_renderer)
        with pytest.raises(StructuralError):
            conv.build()
        conv.pre_build()
        with pytest.raises(StructuralError):
            conv.post_build()
        with pytest.raises(StructuralError):
            conv.pre_build()

    def test_preprocessors_run_in_order(self, make_docs, tmp_path, fake_renderer):
        """Preprocessors transform the source handed to the renderer."""
        src = make_docs(tmp_path / "src", {"a.md": "# a\n"})
        conv = _converter(src, tmp_path / "dst", fake_renderer, preprocessors=[UpperCase()])
        conv.run()
        assert fake_renderer.calls[0][1] == "# A\n"


class TestSingleConversion:
    """Converting individual nodes."""

    def test_dst_node_for_swaps_suffix(self, doc_tree, tmp_path, fake_renderer):
        """The destination mirrors the source path with the renderer suffix."""
        conv = _converter(doc_tree, tmp_path / "dst", fake_renderer)
        src_node = conv.src_top.node("sub/file2.md")
        dst_node = conv.dst_node_for(src_node)
        assert dst_node.relative_path_from(conv.dst_top).as_posix() == "sub/file2.out"
        assert conv.dst_node_for(src_node) is dst_node

    def test_convert_virtual_document(self, doc_tree, tmp_path, fake_renderer):
        """Generated documents can be converted into an explicit node."""
        conv = _converter(doc_tree, tmp_path / "dst", fake_renderer)
        conv.run()

        provider = SrcFromString("# Generated\n")
        virtual = PathTree("/virtual/generated.md", provider).node("generated.md")
        dst_node = conv.dst_top.add_descendants("extra/generated.out")
        assert conv.convert(virtual, dst_node)
        assert (tmp_path / "dst" / "extra" / "generated.out").read_text() == "# Generated\n"
        assert dst_node.data.title == "Generated"

    def test_existing_node_data_is_kept(self, doc_tree, tmp_path, fake_renderer):
        """Converting into a node with NodeData only replaces the conversion."""
        conv = _converter(doc_tree, tmp_path / "dst", fake_renderer)
        dst_node = conv.dst_node_for(conv.src_top.node("file1.md"))
        data = NodeData()
        dst_node.data = data
        conv.run()
        assert dst_node.data is data
        assert data.converted


def test_empty_report_is_truthy():
    """A report without failures is truthy."""
    assert BuildReport()


def test_conversion_info_is_abstract():
    """Only the successful and failed conversion records can be created."""
    node = PathTree("/dst/a.out").node("a.out")
    with pytest.raises(TypeError):
        ConversionInfo(node, node, node.parent)


class TestGeneratedPages:
    """Pages converted by post-builders are counted apart from documents."""

    def test_generated_page_not_counted_as_document(self, doc_tree, tmp_path, fake_renderer):
        conv = _converter(
            doc_tree, tmp_path / "dst", fake_renderer, post_builders=[PageGenerator("# Page\n")]
        )
        report = conv.run()

        assert (report.succeeded, report.failed) == (2, 0)
        assert (report.generated, report.generated_failed) == (1, 0)
        assert report.total == 2
        assert (tmp_path / "dst" / "page.out").exists()

    def test_failed_generated_page(self, doc_tree, tmp_path, fake_renderer):
        """A failing generated page makes the report falsy without counting as a document."""
        conv = _converter(
            doc_tree, tmp_path / "dst", fake_renderer, post_builders=[PageGenerator("FAIL\n")]
        )
        report = conv.run()

        assert (report.succeeded, report.failed) == (2, 0)
        assert report.generated_failed == 1
        assert len(report.failures) == 1
        assert not report
