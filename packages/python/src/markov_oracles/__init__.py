"""
markov-oracles: law-checking oracles for finite Markov categories

Kernels between finite sets, weighted over a semiring, form a Markov
category.  This package builds those kernels and certifies their laws:
determinism, thunkability, comonoid structure, conditional independence,
permutation invariance and the Kolmogorov / Hewitt–Savage zero–one laws.
"""

__version__ = "0.1.0"

from markov_oracles.semiring import Semiring, PROB, BOOL, MAX_PLUS, LOG_PROB
from markov_oracles.dist import (
    Dist,
    WeightMismatch,
    DistMonad,
    dirac,
    from_pairs,
    as_dist,
    pushforward,
    bind,
    product,
    prune,
    normalize,
    equal_dist,
    dist_mismatches,
    probability_monad,
    subprobability_monad,
    weighted_monad,
    require_markov,
    check_fubini,
)
from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    CompositionError,
    Fin,
    FinMarkov,
    KernelMismatch,
    UNIT,
    I_FIN,
    mk_fin,
    tensor_obj,
    compose,
    tensor,
    deterministic,
    pair,
    convex_mix,
    id_k,
    det_k,
    copy_k,
    discard_k,
    swap_k,
    fst_k,
    snd_k,
    from_matrix,
    matrices_close,
    kernel_mismatches,
    is_row_stochastic,
)
from markov_oracles.determinism import (
    DiracCheck,
    DeterministicBase,
    DeterminismResult,
    DeterminismCounterexample,
    is_dirac_at,
    is_deterministic,
    make_deterministic,
    is_deterministic_kernel,
    extract_deterministic_base,
)
from markov_oracles.thunkable import (
    ProbeFailure,
    ThunkabilityReport,
    lift_p,
    generate_probe_dists,
    check_commuting_square,
    is_thunkable,
    check_thunkability_robust,
    verify_deterministic_is_thunkable,
    verify_stochastic_not_thunkable,
)
from markov_oracles.comonoid import (
    MarkovComonoidWitness,
    MarkovComonoidReport,
    ComonoidHomReport,
    ComonoidLawFailure,
    build_markov_comonoid_witness,
    check_markov_comonoid,
    check_markov_comonoid_hom,
)
from markov_oracles.conditional import (
    MarkovConditionalWitness,
    MarkovConditionalReport,
    ConditionalFailure,
    ConditionalPermutationReport,
    build_markov_conditional_witness,
    conditional_marginals,
    factorize_conditional,
    check_conditional_independence,
)
from markov_oracles.deterministic_structure import (
    MarkovDeterministicWitness,
    MarkovDeterminismReport,
    DeterministicFailure,
    MarkovPositivityWitness,
    TensorMarginalDeterminismReport,
    DeterminismLemmaWitness,
    DeterminismLemmaFailure,
    DeterminismLemmaReport,
    build_markov_deterministic_witness,
    certify_deterministic_function,
    check_deterministic_comonoid,
    build_markov_positivity_witness,
    check_deterministic_tensor_via_marginals,
    check_determinism_lemma,
)
from markov_oracles.permutation import (
    FiniteSymmetry,
    PermutationFailure,
    SymmetryReport,
    FinitePermutationInvarianceReport,
    coordinate_permutation,
    check_finite_permutation_invariance,
)
from markov_oracles.projective import (
    LimitSection,
    CountabilityWitness,
    MeasurabilityWitness,
    ProjectiveFamily,
    KolmogorovTest,
    KolmogorovConsistencyResult,
    TailCounterexample,
    TailInvarianceResult,
    KolmogorovExtensionResult,
    make_section,
    restrict_section,
    infer_countability,
    independent_indexed_product,
    pushforward_cylinder,
    run_kolmogorov_consistency,
    apply_patch,
    deterministic_boolean_value,
    check_tail_event_invariance,
    kolmogorov_extension_measure,
    check_kolmogorov_extension_universal_property,
    indexed_product_obj,
    prior_from_family,
    cylinder_projection,
)
from markov_oracles.zero_one import (
    KolmogorovFiniteMarginal,
    KolmogorovZeroOneWitness,
    KolmogorovZeroOneReport,
    HewittSavageWitness,
    HewittSavageReport,
    ZeroOneFailure,
    MarginalCheck,
    build_kolmogorov_zero_one_witness,
    check_kolmogorov_zero_one,
    build_hewitt_savage_witness,
    check_hewitt_savage_zero_one,
)

__all__ = [
    # Semirings
    "Semiring",
    "PROB",
    "BOOL",
    "MAX_PLUS",
    "LOG_PROB",
    # Distributions & monad kinds
    "Dist",
    "WeightMismatch",
    "DistMonad",
    "dirac",
    "from_pairs",
    "as_dist",
    "pushforward",
    "bind",
    "product",
    "prune",
    "normalize",
    "equal_dist",
    "dist_mismatches",
    "probability_monad",
    "subprobability_monad",
    "weighted_monad",
    "require_markov",
    "check_fubini",
    # Finite objects & kernel algebra
    "DEFAULT_TOLERANCE",
    "CompositionError",
    "Fin",
    "FinMarkov",
    "KernelMismatch",
    "UNIT",
    "I_FIN",
    "mk_fin",
    "tensor_obj",
    "compose",
    "tensor",
    "deterministic",
    "pair",
    "convex_mix",
    "id_k",
    "det_k",
    "copy_k",
    "discard_k",
    "swap_k",
    "fst_k",
    "snd_k",
    "from_matrix",
    "matrices_close",
    "kernel_mismatches",
    "is_row_stochastic",
    # Determinism
    "DiracCheck",
    "DeterministicBase",
    "DeterminismResult",
    "DeterminismCounterexample",
    "is_dirac_at",
    "is_deterministic",
    "make_deterministic",
    "is_deterministic_kernel",
    "extract_deterministic_base",
    # Thunkability
    "ProbeFailure",
    "ThunkabilityReport",
    "lift_p",
    "generate_probe_dists",
    "check_commuting_square",
    "is_thunkable",
    "check_thunkability_robust",
    "verify_deterministic_is_thunkable",
    "verify_stochastic_not_thunkable",
    # Comonoids
    "MarkovComonoidWitness",
    "MarkovComonoidReport",
    "ComonoidHomReport",
    "ComonoidLawFailure",
    "build_markov_comonoid_witness",
    "check_markov_comonoid",
    "check_markov_comonoid_hom",
    # Conditional independence
    "MarkovConditionalWitness",
    "MarkovConditionalReport",
    "ConditionalFailure",
    "ConditionalPermutationReport",
    "build_markov_conditional_witness",
    "conditional_marginals",
    "factorize_conditional",
    "check_conditional_independence",
    # Deterministic structure
    "MarkovDeterministicWitness",
    "MarkovDeterminismReport",
    "DeterministicFailure",
    "MarkovPositivityWitness",
    "TensorMarginalDeterminismReport",
    "DeterminismLemmaWitness",
    "DeterminismLemmaFailure",
    "DeterminismLemmaReport",
    "build_markov_deterministic_witness",
    "certify_deterministic_function",
    "check_deterministic_comonoid",
    "build_markov_positivity_witness",
    "check_deterministic_tensor_via_marginals",
    "check_determinism_lemma",
    # Permutation invariance
    "FiniteSymmetry",
    "PermutationFailure",
    "SymmetryReport",
    "FinitePermutationInvarianceReport",
    "coordinate_permutation",
    "check_finite_permutation_invariance",
    # Projective families
    "LimitSection",
    "CountabilityWitness",
    "MeasurabilityWitness",
    "ProjectiveFamily",
    "KolmogorovTest",
    "KolmogorovConsistencyResult",
    "TailCounterexample",
    "TailInvarianceResult",
    "KolmogorovExtensionResult",
    "make_section",
    "restrict_section",
    "infer_countability",
    "independent_indexed_product",
    "pushforward_cylinder",
    "run_kolmogorov_consistency",
    "apply_patch",
    "deterministic_boolean_value",
    "check_tail_event_invariance",
    "kolmogorov_extension_measure",
    "check_kolmogorov_extension_universal_property",
    "indexed_product_obj",
    "prior_from_family",
    "cylinder_projection",
    # Zero–one laws
    "KolmogorovFiniteMarginal",
    "KolmogorovZeroOneWitness",
    "KolmogorovZeroOneReport",
    "HewittSavageWitness",
    "HewittSavageReport",
    "ZeroOneFailure",
    "MarginalCheck",
    "build_kolmogorov_zero_one_witness",
    "check_kolmogorov_zero_one",
    "build_hewitt_savage_witness",
    "check_hewitt_savage_zero_one",
]
