"""Closed-form eigen decomposition of batches of symmetric 3x3 matrices.

All matrices of a batch share flat buffers laid out element-major: element
``k`` of matrix ``tid`` lives at ``k * offset + tid``, where ``offset`` is the
number of matrices.  Each stage of the algorithm works on one matrix and may
be run for all matrices before the next stage starts.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from healthwatch.matrix import Matrix


def _cross(u: Matrix, v: Matrix, out: Matrix) -> None:
    out[0] = u[1] * v[2] - u[2] * v[1]
    out[1] = u[2] * v[0] - u[0] * v[2]
    out[2] = u[0] * v[1] - u[1] * v[0]


def _multiply(u: Matrix, mult: float, out: Matrix) -> None:
    out[0] = u[0] * mult
    out[1] = u[1] * mult
    out[2] = u[2] * mult


def _subtract(u: Matrix, v: Matrix, out: Matrix) -> None:
    out[0] = u[0] - v[0]
    out[1] = u[1] - v[1]
    out[2] = u[2] - v[2]


def _divide(u: Matrix, div: float, out: Matrix) -> None:
    out[0] = u[0] / div
    out[1] = u[1] / div
    out[2] = u[2] / div


def _orthogonal_complement(w: Matrix, u: Matrix, v: Matrix) -> None:
    """Fill u and v so that (u, v, w) is a right-handed orthonormal set."""
    c = abs(w[0]) > abs(w[1])
    if c:
        inv_length = 1.0 / math.sqrt(w[0] * w[0] + w[2] * w[2])
        u[0] = -w[2] * inv_length
        u[1] = 0.0
        u[2] = w[0] * inv_length
    else:
        inv_length = 1.0 / math.sqrt(w[1] * w[1] + w[2] * w[2])
        u[0] = 0.0
        u[1] = w[2] * inv_length
        u[2] = -w[1] * inv_length
    _cross(w, u, v)


def _as_rows(matrix: Sequence[Sequence[float]]) -> list[list[float]]:
    rows = [[float(value) for value in row] for row in matrix]
    if len(rows) != 3 or any(len(row) != 3 for row in rows):
        raise ValueError("expected a 3x3 matrix")
    return rows


class SymmetricEigensolver3x3:
    """Eigenvalues and eigenvectors of a batch of symmetric 3x3 matrices.

    Only the upper triangle of each input matrix is read.  Eigenvectors are
    stored as the columns of a 3x3 matrix, column k belonging to eigenvalue k.
    """

    def __init__(self, matrices: Iterable[Sequence[Sequence[float]]]) -> None:
        rows_list = [_as_rows(matrix) for matrix in matrices]
        n = len(rows_list)
        self.offset = n
        self._input = [0.0] * (9 * n)
        for tid, rows in enumerate(rows_list):
            for r, row in enumerate(rows):
                for c, value in enumerate(row):
                    self._input[(r * 3 + c) * n + tid] = value
        self._eigenvectors = [0.0] * (9 * n)
        self._eigenvalues = [0.0] * (3 * n)
        self._buffer = [0.0] * (18 * n)
        self._i02 = [0] * (2 * n)
        self._max_abs = [0.0] * n
        self._norm = [0.0] * n

    def __len__(self) -> int:
        return self.offset

    def _check_tid(self, tid: int) -> None:
        if not 0 <= tid < self.offset:
            raise IndexError(f"matrix index {tid} out of range")

    def _input_view(self, tid: int) -> Matrix:
        return Matrix(3, 3, self.offset, self._input, tid)

    def _vector(self, data: list[float], start: int, stride: int) -> Matrix:
        return Matrix(3, 1, stride, data, start)

    def normalize_input(self, tid: int) -> None:
        """Scale the matrix so its largest absolute element is 1."""
        self._check_tid(tid)
        n = self.offset
        inp = self._input_view(tid)
        a00, a01, a02 = inp[0, 0], inp[0, 1], inp[0, 2]
        a11, a12, a22 = inp[1, 1], inp[1, 2], inp[2, 2]

        max_abs = max(abs(a00), abs(a01), abs(a02), abs(a11), abs(a12), abs(a22))
        if max_abs == 0.0:
            evec = Matrix(3, 3, n, self._eigenvectors, tid)
            evec[0, 0] = 1.0
            evec[1, 1] = 1.0
            evec[2, 2] = 1.0
            self._norm[tid] = 0.0
            return

        inv = 1.0 / max_abs
        a00 *= inv
        a01 *= inv
        a02 *= inv
        a11 *= inv
        a12 *= inv
        a22 *= inv

        inp[0, 0] = a00
        inp[0, 1] = a01
        inp[0, 2] = a02
        inp[1, 1] = a11
        inp[1, 2] = a12
        inp[2, 2] = a22
        inp[1, 0] = a01
        inp[2, 0] = a02
        inp[2, 1] = a12

        self._norm[tid] = a01 * a01 + a02 * a02 + a12 * a12
        self._max_abs[tid] = max_abs

    def compute_eigenvalues(self, tid: int) -> None:
        """Eigenvalues of the normalised matrix, ascending unless it is diagonal."""
        self._check_tid(tid)
        n = self.offset
        inp = self._input_view(tid)
        evals = self._vector(self._eigenvalues, tid, n)
        a00, a01, a02 = inp[0, 0], inp[0, 1], inp[0, 2]
        a11, a12, a22 = inp[1, 1], inp[1, 2], inp[2, 2]
        norm = self._norm[tid]

        if norm > 0.0:
            trace_div3 = (a00 + a11 + a22) / 3.0
            b00 = a00 - trace_div3
            b11 = a11 - trace_div3
            b22 = a22 - trace_div3
            denom = math.sqrt((b00 * b00 + b11 * b11 + b22 * b22 + norm * 2.0) / 6.0)
            c00 = b11 * b22 - a12 * a12
            c01 = a01 * b22 - a12 * a02
            c02 = a01 * a12 - b11 * a02
            det = (b00 * c00 - a01 * c01 + a02 * c02) / (denom * denom * denom)
            half_det = min(max(det * 0.5, -1.0), 1.0)

            angle = math.acos(half_det) / 3.0
            beta2 = math.cos(angle) * 2.0
            beta0 = math.cos(angle + math.pi * 2.0 / 3.0) * 2.0
            beta1 = -(beta0 + beta2)

            evals[0] = trace_div3 + denom * beta0
            evals[1] = trace_div3 + denom * beta1
            evals[2] = trace_div3 + denom * beta2

            self._i02[tid] = 2 if half_det >= 0 else 0
            self._i02[tid + n] = 0 if half_det >= 0 else 2
        else:
            evals[0] = a00
            evals[1] = a11
            evals[2] = a22

    def update_eigenvalues(self, tid: int) -> None:
        """Undo the normalisation on the eigenvalues."""
        self._check_tid(tid)
        max_abs = self._max_abs[tid]
        evals = self._vector(self._eigenvalues, tid, self.offset)
        evals[0] *= max_abs
        evals[1] *= max_abs
        evals[2] *= max_abs

    def compute_eigenvector00(self, tid: int) -> None:
        """Cross products of the rows of A - eval0 * I."""
        self._check_tid(tid)
        n = self.offset
        if self._norm[tid] > 0.0:
            inp = self._input_view(tid)
            row_mat = Matrix(3, 3, n, self._buffer, tid)
            eval0 = self._eigenvalues[tid + self._i02[tid] * n]
            inp.copy_to(row_mat)
            row_mat[0, 0] -= eval0
            row_mat[1, 1] -= eval0
            row_mat[2, 2] -= eval0

            # row 0 is r0 x r1, row 1 is r0 x r2, row 2 is r1 x r2
            rxr = Matrix(3, 3, n, self._buffer, 9 * n + tid)
            _cross(row_mat.row(0), row_mat.row(1), rxr.row(0))
            _cross(row_mat.row(0), row_mat.row(2), rxr.row(1))
            _cross(row_mat.row(1), row_mat.row(2), rxr.row(2))
        else:
            self._eigenvectors[tid] = 1.0

    def compute_eigenvector01(self, tid: int) -> None:
        """Eigenvector 0 from the longest of the row cross products."""
        self._check_tid(tid)
        n = self.offset
        if self._norm[tid] > 0.0:
            evec0 = self._vector(self._eigenvectors, tid + self._i02[tid] * n, 3 * n)
            rxr = Matrix(3, 3, n, self._buffer, 9 * n + tid)
            lengths = [
                rxr[i, 0] * rxr[i, 0] + rxr[i, 1] * rxr[i, 1] + rxr[i, 2] * rxr[i, 2]
                for i in range(3)
            ]
            imax = max(range(3), key=lambda i: (lengths[i], -i))
            _divide(rxr.row(imax), math.sqrt(lengths[imax]), evec0)

    def compute_eigenvector10(self, tid: int) -> None:
        """Project A - eval1 * I onto the plane orthogonal to eigenvector 0."""
        self._check_tid(tid)
        n = self.offset
        if self._norm[tid] > 0.0:
            inp = self._input_view(tid)
            evec0 = self._vector(self._eigenvectors, tid + self._i02[tid] * n, 3 * n)
            eval1 = self._eigenvalues[tid + n]

            u = self._vector(self._buffer, tid, n)
            v = self._vector(self._buffer, 3 * n + tid, n)
            _orthogonal_complement(evec0, u, v)

            au = self._vector(self._buffer, 6 * n + tid, n)
            av = self._vector(self._buffer, 9 * n + tid, n)
            for src, dst in ((u, au), (v, av)):
                t0, t1, t2 = src[0], src[1], src[2]
                dst[0] = (inp[0, 0] - eval1) * t0 + inp[0, 1] * t1 + inp[0, 2] * t2
                dst[1] = inp[0, 1] * t0 + (inp[1, 1] - eval1) * t1 + inp[1, 2] * t2
                dst[2] = inp[0, 2] * t0 + inp[1, 2] * t1 + (inp[2, 2] - eval1) * t2
        else:
            self._eigenvectors[tid + n * 4] = 1.0

    def compute_eigenvector11(self, tid: int) -> None:
        """Eigenvector 1 from the projected 2x2 system."""
        self._check_tid(tid)
        n = self.offset
        if self._norm[tid] <= 0.0:
            return
        evec1 = self._vector(self._eigenvectors, tid + n, 3 * n)
        u = self._vector(self._buffer, tid, n)
        v = self._vector(self._buffer, 3 * n + tid, n)
        au = self._vector(self._buffer, 6 * n + tid, n)
        av = self._vector(self._buffer, 9 * n + tid, n)

        m00 = u[0] * au[0] + u[1] * au[1] + u[2] * au[2]
        m01 = u[0] * av[0] + u[1] * av[1] + u[2] * av[2]
        m11 = v[0] * av[0] + v[1] * av[1] + v[2] * av[2]
        abs_m00, abs_m01, abs_m11 = abs(m00), abs(m01), abs(m11)

        if abs_m00 > 0 or abs_m01 > 0 or abs_m11 > 0:
            u_mult = m01 if abs_m00 >= abs_m11 else m11
            v_mult = m00 if abs_m00 >= abs_m11 else m01
            if abs(u_mult) >= abs(v_mult):
                v_mult /= u_mult
                u_mult = 1.0 / math.sqrt(1.0 + v_mult * v_mult)
                v_mult *= u_mult
            else:
                u_mult /= v_mult
                v_mult = 1.0 / math.sqrt(1.0 + u_mult * u_mult)
                u_mult *= v_mult
            _multiply(u, u_mult, u)
            _multiply(v, v_mult, v)
            _subtract(u, v, evec1)
        else:
            u.copy_to(evec1)

    def compute_eigenvector2(self, tid: int) -> None:
        """The last eigenvector as the cross product of the other two."""
        self._check_tid(tid)
        n = self.offset
        if self._norm[tid] > 0.0:
            evec0 = self._vector(self._eigenvectors, tid + self._i02[tid] * n, 3 * n)
            evec1 = self._vector(self._eigenvectors, tid + n, 3 * n)
            evec2 = self._vector(self._eigenvectors, tid + self._i02[tid + n] * n, 3 * n)
            _cross(evec0, evec1, evec2)
        else:
            self._eigenvectors[tid + n * 8] = 1.0

    def solve(self) -> None:
        """Run every stage for every matrix of the batch."""
        stages = (
            self.normalize_input,
            self.compute_eigenvalues,
            self.compute_eigenvector00,
            self.compute_eigenvector01,
            self.compute_eigenvector10,
            self.compute_eigenvector11,
            self.compute_eigenvector2,
            self.update_eigenvalues,
        )
        for stage in stages:
            for tid in range(self.offset):
                stage(tid)

    def eigenvalues(self, tid: int) -> tuple[float, float, float]:
        self._check_tid(tid)
        n = self.offset
        return tuple(self._eigenvalues[k * n + tid] for k in range(3))

    def eigenvectors(self, tid: int) -> list[tuple[float, float, float]]:
        """Eigenvectors of one matrix; item k belongs to eigenvalue k."""
        self._check_tid(tid)
        evec = Matrix(3, 3, self.offset, self._eigenvectors, tid)
        return [tuple(evec[r, c] for r in range(3)) for c in range(3)]


def solve_symmetric_3x3(
    matrix: Sequence[Sequence[float]],
) -> tuple[tuple[float, float, float], list[tuple[float, float, float]]]:
    """Eigenvalues and matching eigenvectors of one symmetric 3x3 matrix."""
    solver = SymmetricEigensolver3x3([matrix])
    solver.solve()
    return solver.eigenvalues(0), solver.eigenvectors(0)