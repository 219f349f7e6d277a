import pytest

from healthwatch.matrix import Matrix


def _from_rows(rows):
    flat = [float(v) for row in rows for v in row]
    return Matrix(len(rows), len(rows[0]), 1, flat)


def _product(a, b):
    return [
        [sum(a[i][k] * b[k][j] for k in range(len(b))) for j in range(len(b[0]))]
        for i in range(len(a))
    ]


def _assert_identity(rows):
    for i, row in enumerate(rows):
        for j, value in enumerate(row):
            assert value == pytest.approx(1.0 if i == j else 0.0, abs=1e-12)


def test_zeros_and_empty():
    m = Matrix.zeros(2, 3)
    assert m.tolist() == [[0.0] * 3, [0.0] * 3]
    assert not m.is_empty()
    assert Matrix().is_empty()


def test_indexing_reads_and_writes_buffer():
    m = _from_rows([[1, 2], [3, 4]])
    m[1, 0] = 9.0
    assert m.at(1, 0) == 9.0
    assert m.buffer[2] == 9.0
    assert m[3] == 4.0


def test_cell_index_bounds():
    m = _from_rows([[1, 2], [3, 4]])
    assert m.cell_index(1, 1) == 3
    assert m.cell_index(2, 0) is None
    assert m.cell_index(0, -1) is None
    assert m.cell_index(0) is None
    vec = m.row(1)
    assert vec.cell_index(1) == 3
    assert vec.cell_index(2) is None


def test_row_and_col_views_share_buffer():
    m = _from_rows([[1, 2, 3], [4, 5, 6]])
    assert m.row(1).tolist() == [[4.0, 5.0, 6.0]]
    assert m.col(2).tolist() == [[3.0], [6.0]]
    column = m.col(1)
    column[1] = 50.0
    assert m.at(1, 1) == 50.0


def test_strided_view():
    buffer = [float(i) for i in range(8)]
    m = Matrix(2, 2, 2, buffer)
    assert m.tolist() == [[0.0, 2.0], [4.0, 6.0]]
    shifted = Matrix(2, 2, 2, buffer, start=1)
    assert shifted.tolist() == [[1.0, 3.0], [5.0, 7.0]]


def test_copy_to():
    m = _from_rows([[1, 2], [3, 4]])
    out = Matrix.zeros(2, 2)
    m.copy_to(out)
    assert out.tolist() == m.tolist()


def test_resize_keeps_buffer():
    m = _from_rows([[1, 2], [3, 4], [5, 6]])
    m.resize(2, 2)
    assert m.tolist() == [[1.0, 2.0], [3.0, 4.0]]


def test_scale_and_divide_round_trip():
    m = _from_rows([[1, 2], [3, 4]])
    original = m.tolist()
    m *= 4.0
    m /= 4.0
    assert m.tolist() == original


def test_divide_by_zero():
    m = _from_rows([[1, 2]])
    with pytest.raises(ZeroDivisionError):
        m /= 0
    assert m.tolist() == [[1.0, 2.0]]
    assert m.buffer[:2] == [1.0, 2.0]


def test_transpose_twice_is_identity():
    m = _from_rows([[1, 2, 3], [4, 5, 6]])
    t = Matrix.zeros(3, 2)
    m.transpose(t)
    assert t.at(2, 0) == m.at(0, 2)
    back = Matrix.zeros(2, 3)
    t.transpose(back)
    assert back.tolist() == m.tolist()


def test_transpose_shape_mismatch():
    with pytest.raises(ValueError):
        _from_rows([[1, 2, 3]]).transpose(Matrix.zeros(1, 3))


def test_inverse_of_singular_matrix():
    with pytest.raises(ZeroDivisionError):
        _from_rows([[1, 2], [2, 4]]).inverse(Matrix.zeros(2, 2))
    with pytest.raises(ZeroDivisionError):
        _from_rows([[0]]).inverse(Matrix.zeros(1, 1))


def test_inverse_shape_errors():
    with pytest.raises(ValueError):
        _from_rows([[1, 2, 3]]).inverse(Matrix.zeros(3, 1))
    with pytest.raises(ValueError):
        Matrix.zeros(4, 4).inverse(Matrix.zeros(4, 4))