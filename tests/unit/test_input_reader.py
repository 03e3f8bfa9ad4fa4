"""Tests for the shapefile reader."""

import shutil
from pathlib import Path

import pytest

from core.exceptions import FormatError, NotFoundError, WorkflowError
from core.input_reader import list_layers, read_shapefile


class TestReadShapefile:
    def test_reads_layer_with_attributes(self, shapefile_dir: Path) -> None:
        gdf = read_shapefile(shapefile_dir, 'points')
        assert len(gdf) == 3
        assert set(gdf.geometry.geom_type) == {'Point'}
        assert {'category', 'date', 'id'} <= set(gdf.columns)
        assert gdf['id'].tolist() == [101, 102, 103]

    def test_keeps_original_crs(self, shapefile_dir: Path) -> None:
        gdf = read_shapefile(shapefile_dir, 'zones')
        assert gdf.crs is not None
        assert gdf.crs.to_epsg() == 32630

    def test_accepts_string_directory(self, shapefile_dir: Path) -> None:
        gdf = read_shapefile(str(shapefile_dir), 'zones')
        assert len(gdf) == 2

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            read_shapefile(tmp_path / 'nope', 'zones')
        assert isinstance(exc_info.value, FileNotFoundError)
        assert exc_info.value.stage == 'read'

    def test_missing_layer_lists_available(self, shapefile_dir: Path) -> None:
        with pytest.raises(NotFoundError, match='points, zones'):
            read_shapefile(shapefile_dir, 'roads')

    def test_missing_dbf_is_format_error(self, shapefile_dir: Path) -> None:
        (shapefile_dir / 'zones.dbf').unlink()
        with pytest.raises(FormatError, match='.dbf'):
            read_shapefile(shapefile_dir, 'zones')

    def test_missing_shx_is_format_error(self, shapefile_dir: Path) -> None:
        (shapefile_dir / 'zones.shx').unlink()
        with pytest.raises(FormatError, match='.shx'):
            read_shapefile(shapefile_dir, 'zones')

    def test_corrupt_files_are_format_error(self, tmp_path: Path) -> None:
        for suffix in ('.shp', '.shx', '.dbf'):
            (tmp_path / f'broken{suffix}').write_bytes(b'not a shapefile')
        with pytest.raises(FormatError) as exc_info:
            read_shapefile(tmp_path, 'broken')
        assert isinstance(exc_info.value, ValueError)
        assert isinstance(exc_info.value, WorkflowError)

    def test_layer_without_prj_has_no_crs(self, shapefile_dir: Path) -> None:
        (shapefile_dir / 'zones.prj').unlink()
        gdf = read_shapefile(shapefile_dir, 'zones')
        assert gdf.crs is None

    def test_attribute_table_shorter_than_shapes(self, shapefile_dir: Path, points_gdf) -> None:
        points_gdf.iloc[:2].to_file(shapefile_dir / 'pair.shp', driver='ESRI Shapefile')
        shutil.copyfile(shapefile_dir / 'pair.dbf', shapefile_dir / 'points.dbf')

        with pytest.raises(FormatError, match='inconsistent'):
            read_shapefile(shapefile_dir, 'points')


class TestListLayers:
    def test_lists_sorted_layer_names(self, shapefile_dir: Path) -> None:
        assert list_layers(shapefile_dir) == ['points', 'zones']

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert list_layers(tmp_path) == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            list_layers(tmp_path / 'missing')
