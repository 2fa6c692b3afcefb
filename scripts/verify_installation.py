"""
Manual Verification Script for poisson_gmc
Run this to check that every component imports and runs on a short chain.

Usage: python verify_installation.py
"""

print("=" * 70)
print("poisson_gmc - Manual Verification")
print("=" * 70)
print()

# Test 1: Binning
print("[1/5] Testing Binning Engine...")
try:
    from poisson_gmc import Grid, bin_counts

    counts = bin_counts([0.5, 1.2, 1.9, 2.3, 2.8], Grid.uniform(0.0, 3.0, 3))

    print(f"   ✓ Binning working!")
    print(f"   - Counts: {counts.tolist()} (expected [1, 2, 2])")
    print()
except Exception as e:
    print(f"   ✗ FAILED: {str(e)}\n")

# Test 2: Sampler
print("[2/5] Testing GMC Sampler...")
try:
    from poisson_gmc import inference

    result = inference([0.5, 1.2, 1.9, 2.3, 2.8], T=3.0, N=3,
                       samples=range(1, 501), verbose=False, seed=0)

    print(f"   ✓ Sampler working!")
    print(f"   - Retained samples: {result.psi_samples.shape}")
    print(f"   - alpha acceptance rate: {result.acceptance_rate:.1%}")
    print()
except Exception as e:
    print(f"   ✗ FAILED: {str(e)}\n")

# Test 3: Summary
print("[3/5] Testing Posterior Summary...")
try:
    from poisson_gmc import summarize_posterior

    summary = summarize_posterior(result)

    print(f"   ✓ Summary working!")
    print(f"   - Posterior mean: {[round(x, 2) for x in summary.mean]}")
    print()
except Exception as e:
    print(f"   ✗ FAILED: {str(e)}\n")

# Test 4: Datasets
print("[4/5] Testing Example Datasets...")
try:
    from poisson_gmc import load_dataset

    data = load_dataset('disasters')

    print(f"   ✓ Datasets working!")
    print(f"   - Disasters: {len(data.observations)} events")
    print()
except Exception as e:
    print(f"   ✗ FAILED: {str(e)}\n")

# Test 5: Diagnostics (optional)
print("[5/5] Testing Convergence Diagnostics...")
try:
    from poisson_gmc.diagnostics import ARVIZ_AVAILABLE

    if ARVIZ_AVAILABLE:
        print(f"   ✓ ArviZ available, R-hat / ESS enabled")
    else:
        print(f"   - ArviZ not installed (pip install poisson-gmc[diagnostics])")
    print()
except Exception as e:
    print(f"   ✗ FAILED: {str(e)}\n")

# Summary
print("=" * 70)
print("Verification Complete!")
print("=" * 70)
print()
print("Next Steps:")
print("1. Run full test suite: pytest tests/ -v")
print("2. Run the demo: python examples/disaster_intensity_demo.py")
print("=" * 70)
