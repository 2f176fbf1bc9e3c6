"""
Expression table loader tests
"""
import pytest

from conftest import TRANSCRIPTS, write_ctab, write_dataset
from isoform_de.errors import DataFormatError
from isoform_de.expression import (
    Granularity,
    Measurement,
    aggregate_to_genes,
    load_expression,
    transcripts_per_gene,
)


class TestLoadExpression:

    def test_transcript_table(self, loaded, registry):
        transcripts, _, _ = loaded
        assert transcripts.granularity is Granularity.TRANSCRIPT
        assert transcripts.measurement is Measurement.FPKM
        assert transcripts.samples == registry.ids
        assert transcripts.features == ["1", "2", "3", "4", "5"]
        assert transcripts.data.loc["1"].tolist() == [1.0, 1.0, 100.0, 100.0]

    def test_gene_table_sums_transcripts(self, loaded):
        _, genes, _ = loaded
        assert genes.granularity is Granularity.GENE
        assert genes.features == ["G1", "G2", "G3"]
        assert genes.data.loc["G1"].tolist() == [6.0, 6.0, 105.0, 105.0]
        assert genes.data.loc["G3"].tolist() == [20.0, 25.0, 30.0, 28.0]

    def test_annotation(self, loaded):
        _, _, annotation = loaded
        assert annotation.transcripts.loc["3", "t_name"] == "TX-B1"
        assert annotation.transcripts.loc["5", "gene_id"] == "G3"
        assert annotation.genes.loc["G1", "gene_name"] == "GENEA"
        assert len(annotation.genes) == 3
        assert annotation.transcript_names_by_gene()["G3"] == "TX-C1,TX-C2"

    def test_columns_follow_registry_not_directory(self, tmp_path):
        from isoform_de.samples import SampleRegistry

        _, data_dir = write_dataset(tmp_path)
        reg = SampleRegistry.from_pairs(
            [("s4", "young"), ("s1", "old"), ("s3", "young"), ("s2", "old")]
        )
        transcripts, _, _ = load_expression(data_dir, reg)
        assert transcripts.samples == ["s4", "s1", "s3", "s2"]
        assert transcripts.data.loc["1"].tolist() == [100.0, 1.0, 100.0, 1.0]

    def test_cov_measurement(self, dataset, registry):
        _, data_dir = dataset
        transcripts, _, _ = load_expression(data_dir, registry, Measurement.COV)
        assert transcripts.measurement is Measurement.COV
        assert transcripts.data.loc["1"].tolist() == [0.5, 0.5, 50.0, 50.0]

    def test_missing_sample_file(self, dataset, registry):
        _, data_dir = dataset
        (data_dir / "s3" / "t_data.ctab").unlink()
        with pytest.raises(FileNotFoundError):
            load_expression(data_dir, registry)

    def test_missing_column(self, dataset, registry):
        _, data_dir = dataset
        write_ctab(data_dir / "s2" / "t_data.ctab", [
            {"t_id": "1", "t_name": "TX-A1", "gene_id": "G1", "length": 10, "FPKM": 1.0},
        ])
        with pytest.raises(DataFormatError, match="gene_name"):
            load_expression(data_dir, registry)

    def test_transcript_sets_must_match(self, dataset, registry):
        _, data_dir = dataset
        rows = [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": length, "FPKM": values[1]}
            for tid, tname, gid, gname, length, values in TRANSCRIPTS[:-1]
        ]
        write_ctab(data_dir / "s2" / "t_data.ctab", rows)
        with pytest.raises(DataFormatError, match="differ"):
            load_expression(data_dir, registry)

    def test_negative_values_rejected(self, dataset, registry):
        _, data_dir = dataset
        write_ctab(data_dir / "s1" / "t_data.ctab", [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": length, "FPKM": -1.0}
            for tid, tname, gid, gname, length, _ in TRANSCRIPTS
        ])
        with pytest.raises(DataFormatError, match="negative"):
            load_expression(data_dir, registry)

    def test_non_numeric_values_rejected(self, dataset, registry):
        _, data_dir = dataset
        write_ctab(data_dir / "s1" / "t_data.ctab", [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": length, "FPKM": "high"}
            for tid, tname, gid, gname, length, _ in TRANSCRIPTS
        ])
        with pytest.raises(DataFormatError, match="non-numeric"):
            load_expression(data_dir, registry)

    def test_non_finite_values_rejected(self, dataset, registry):
        _, data_dir = dataset
        write_ctab(data_dir / "s2" / "t_data.ctab", [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": length, "FPKM": "inf" if tid == "3" else values[1]}
            for tid, tname, gid, gname, length, values in TRANSCRIPTS
        ])
        with pytest.raises(DataFormatError, match="non-finite 'FPKM'"):
            load_expression(data_dir, registry)

    def test_bad_length_rejected(self, dataset, registry):
        _, data_dir = dataset
        write_ctab(data_dir / "s1" / "t_data.ctab", [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": "long" if tid == "1" else length, "FPKM": values[0]}
            for tid, tname, gid, gname, length, values in TRANSCRIPTS
        ])
        with pytest.raises(DataFormatError, match="non-numeric 'length'"):
            load_expression(data_dir, registry)


class TestGeneAggregation:

    def test_subset_regroups_surviving_transcripts(self, loaded):
        transcripts, _, annotation = loaded
        genes = aggregate_to_genes(transcripts.select(["1", "4"]), annotation)
        assert genes.features == ["G1", "G3"]
        assert genes.data.loc["G1"].tolist() == [1.0, 1.0, 100.0, 100.0]

    def test_select_does_not_mutate(self, loaded):
        transcripts, _, _ = loaded
        subset = transcripts.select(["2"])
        subset.data.iloc[0, 0] = 99.0
        assert transcripts.data.loc["2", "s1"] == 5.0

    def test_transcripts_per_gene(self, loaded):
        _, _, annotation = loaded
        counts = transcripts_per_gene(annotation)
        assert counts.to_dict() == {"G1": 2, "G2": 1, "G3": 2}
        assert transcripts_per_gene(annotation, ["1", "3"]).to_dict() == {"G1": 1, "G2": 1}
