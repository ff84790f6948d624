"""Univariate and multilinear polynomials, sum-check and GKR lookup arguments."""