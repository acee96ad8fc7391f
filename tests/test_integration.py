"""
Integration tests for loading a data directory and running the CLI.
"""

import json
import pytest
import pandas as pd
import tempfile
import sys
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent))

from src.cli.run_search import main
from src.ingestion.directory_loader import known_collections, load_collection_file, load_directory_store
from src.search.service import DirectoryService

from sample_data import sample_collections, ids


class TestDirectorySearch:
    """Integration tests from data files to search responses."""

    def setup_method(self):
        """Setup test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.data_dir = Path(self.temp_dir) / "data"
        self.data_dir.mkdir()

        collections = sample_collections()

        # Departments as a flat CSV export
        pd.DataFrame(collections.pop("departments")).to_csv(self.data_dir / "departments.csv", index=False)

        # Ambulances as JSON lines
        with open(self.data_dir / "ambulance.jsonl", 'w') as f:
            for record in collections.pop("ambulance"):
                f.write(json.dumps(record) + "\n")

        for name, records in collections.items():
            with open(self.data_dir / f"{name}.json", 'w') as f:
                json.dump(records, f)

        self.config_path = Path(self.temp_dir) / "provider_search.yaml"
        self.config_path.write_text("""
search:
  default_page_size: 10
  partial_results: false

typeahead:
  max_suggestions: 15
""")

    def test_known_collections(self):
        """Test the collection names the loader looks for."""
        assert set(known_collections()) == {
            "doctors", "clinics", "pathology", "pharmacies", "ambulance", "patients", "departments"
        }

    def test_load_collection_file_formats(self):
        """Test loading each supported format."""
        assert len(load_collection_file(self.data_dir / "doctors.json")) == 5
        assert len(load_collection_file(self.data_dir / "ambulance.jsonl")) == 2
        assert isinstance(load_collection_file(self.data_dir / "departments.csv"), pd.DataFrame)

        unsupported = self.data_dir / "notes.txt"
        unsupported.write_text("nothing")
        with pytest.raises(ValueError):
            load_collection_file(unsupported)

    def test_missing_collection_loads_empty(self):
        """Test that an absent file gives an empty collection."""
        (self.data_dir / "pathology.json").unlink()
        store = load_directory_store(self.data_dir)

        assert store.find("pathology") == []
        assert len(store.find("doctors")) == 5

    def test_missing_directory(self):
        """Test that a missing data directory is reported."""
        with pytest.raises(FileNotFoundError):
            load_directory_store(Path(self.temp_dir) / "absent")

    def test_search_from_files(self):
        """Test the full search path over loaded files."""
        service = DirectoryService(load_directory_store(self.data_dir))

        body = service.search({"q": "cardio", "type": "doctors"}).to_dict()
        assert ids(body["results"]["doctors"]) == ["doc1", "doc2"]
        assert body["results"]["doctors"][0]["department"]["name"] == "cardiology"

        body = service.search({"q": "delivery", "type": "pharmacies"}).to_dict()
        assert ids(body["results"]["pharmacies"]) == ["ph1"]

        body = service.search({"type": "ambulance"}).to_dict()
        assert ids(body["results"]["ambulances"]) == ["a2", "a1"]

    def test_suggest_from_files(self):
        """Test default suggestions from a CSV category export."""
        service = DirectoryService(load_directory_store(self.data_dir))
        suggestions = service.suggest("")

        assert [s.text for s in suggestions] == ["Cardiology", "Neurology"]

    def test_cli_search(self, capsys):
        """Test the search command."""
        exit_code = main(["--data", str(self.data_dir), "--config", str(self.config_path),
                          "search", "--city", "Springfield", "--type", "clinics"])
        body = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert body["success"] is True
        assert body["limit"] == 10
        assert ids(body["results"]["clinics"]) == ["c2", "c1"]

    def test_cli_suggest(self, capsys):
        """Test the suggest command."""
        exit_code = main(["--data", str(self.data_dir), "--config", str(self.config_path),
                          "suggest", "--q", "cardio"])
        body = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert body["suggestions"][0]["text"] == "Dr. Asha Rao"

    def test_cli_locations(self, capsys):
        """Test the locations command."""
        exit_code = main(["--data", str(self.data_dir), "--config", str(self.config_path), "locations"])
        body = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert "Springfield" in body["locations"]
        assert body["locations"] == sorted(body["locations"])

    def test_cli_invalid_request(self, capsys):
        """Test that a bad request prints the error envelope."""
        exit_code = main(["--data", str(self.data_dir), "--config", str(self.config_path),
                          "search", "--type", "hospitals"])
        body = json.loads(capsys.readouterr().out)

        assert exit_code == 1
        assert body == {
            "success": False,
            "message": "Invalid search request",
            "parameter": "type",
            "detail": "Unknown search type 'hospitals'",
        }

    def test_cli_missing_data(self):
        """Test that a missing data directory exits with status 2."""
        exit_code = main(["--data", str(Path(self.temp_dir) / "absent"), "locations"])
        assert exit_code == 2

    def teardown_method(self):
        """Cleanup test fixtures."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)


if __name__ == "__main__":
    pytest.main([__file__])
