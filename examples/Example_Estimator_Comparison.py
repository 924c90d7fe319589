"""
Estimator Comparison for Outlier Factor Scoring
===============================================

This script builds a labelled dataset with a few dense clusters, a thin line of points
and scattered noise, then scores it with every density estimator over a range of k.
All runs share one cached neighbor provider, so the k-NN search is done once per k and
reused by every estimator.

poetry run python examples/Example_Estimator_Comparison.py [FLAGS]
  --review, -r          Show the top ranked points of every run
  --torch               Use the torch neighbor provider (GPU when available)
  --data PATH           Score a whitespace separated file (numbers followed by a label)
                        instead of the synthetic dataset. Points labelled "Noise" are
                        the true outliers.

Dataset Layout (synthetic):
- Two Gaussian clusters (150 points each)
- A thin line segment (60 points)
- Uniform noise over the bounding box (20 points)
"""

from outlierfactor import (
    BruteForceNeighborProvider,
    CachedNeighborProvider,
    Dataset,
    OutlierScorer,
    ScorerConfig,
    TorchNeighborProvider,
    roc_auc_for_label,
    top_outliers,
)
from outlierfactor.evaluation import average_precision
import numpy as np
import time
from typing import List


ESTIMATORS = ["cof", "lof", "knn_mean"]
K_VALUES = [5, 10, 20]


def create_dataset(seed: int = 42) -> Dataset:
    """Create the synthetic labelled dataset."""
    rng = np.random.default_rng(seed)

    first = rng.normal(loc=(0.0, 0.0), scale=0.5, size=(150, 2))
    second = rng.normal(loc=(6.0, 6.0), scale=0.8, size=(150, 2))

    # Evenly spaced points along a line: sparse in 2-D, but well connected
    t = np.linspace(0.0, 1.0, 60)[:, None]
    line = np.hstack([t * 8.0 - 1.0, np.full_like(t, -3.0)]) + rng.normal(0.0, 0.02, (60, 2))

    noise = rng.uniform(low=-4.0, high=10.0, size=(20, 2))

    vectors = np.vstack([first, second, line, noise])
    labels = ["Cluster"] * 300 + ["Line"] * 60 + ["Noise"] * 20
    return Dataset(vectors, ids=range(1, len(vectors) + 1), labels=labels)


def load_dataset(path: str) -> Dataset:
    """Read numeric columns followed by a class label, one point per line."""
    vectors = []
    labels = []
    with open(path) as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            numbers = []
            label_parts = []
            for token in line.split():
                try:
                    numbers.append(float(token))
                except ValueError:
                    label_parts.append(token)
            vectors.append(numbers)
            labels.append(" ".join(label_parts))
    return Dataset(vectors, ids=range(1, len(vectors) + 1), labels=labels)


def compare_estimators(dataset: Dataset, use_torch: bool = False, review_mode: bool = False):
    """Score the dataset with every estimator and k, printing AUC and timings."""
    overall_start_time = time.time()

    print("🧪 OUTLIER FACTOR ESTIMATOR COMPARISON")
    print(f"📦 Dataset: {len(dataset)} points, dimension {dataset.dimension}")
    print(f"🎯 Outliers: {len(dataset.ids_with_label('Noise'))} points labelled 'Noise'")
    if use_torch:
        inner = TorchNeighborProvider(dataset)
        print(f"🔥 Neighbor search: torch on {inner.device}")
    else:
        inner = BruteForceNeighborProvider(dataset)
        print("🔍 Neighbor search: brute force")
    provider = CachedNeighborProvider(inner)
    print("=" * 50)

    summary: List[dict] = []
    for k in K_VALUES:
        print(f"\n📊 k = {k}")
        print("-" * 30)
        for estimator in ESTIMATORS:
            start = time.time()
            result = OutlierScorer(ScorerConfig(k=k, estimator=estimator)).score(
                dataset, provider=provider
            )
            elapsed = time.time() - start

            auc = roc_auc_for_label(result, dataset, "Noise")
            ap = average_precision(result, dataset.ids_with_label("Noise"))
            summary.append({"k": k, "estimator": estimator, "auc": auc, "ap": ap, "time": elapsed})

            print(f"  {estimator:9}: AUC={auc:.4f} | AP={ap:.4f} | "
                  f"⏱️  {elapsed:.3f}s | undefined={len(result.undefined_ids())}")

            if review_mode:
                labels = dict(zip(dataset.ids, dataset.labels))
                for point_id, value in top_outliers(result, 5):
                    print(f"      #{point_id:<5} score={value:.4f} ({labels[point_id]})")

        cache_info = provider.get_cache_info()
        print(f"💾 Cache status: {cache_info['cache_size']} neighbor sets")

    print("\n🏁 SUMMARY")
    print("=" * 50)
    best = max(summary, key=lambda row: row["auc"])
    for estimator in ESTIMATORS:
        rows = [row for row in summary if row["estimator"] == estimator]
        print(f"  {estimator:9}: avg AUC={np.mean([r['auc'] for r in rows]):.4f} | "
              f"avg time={np.mean([r['time'] for r in rows]):.3f}s")
    print(f"\n🥇 Best run: {best['estimator']} with k={best['k']} (AUC={best['auc']:.4f})")
    print(f"⏱️  Total time: {time.time() - overall_start_time:.3f}s")

    provider.clear_cache()


def main():
    """Run the comparison."""
    import sys

    review_mode = '--review' in sys.argv or '-r' in sys.argv
    use_torch = '--torch' in sys.argv

    if '--data' in sys.argv:
        position = sys.argv.index('--data') + 1
        if position >= len(sys.argv):
            print("❌ Error: --data needs a file path")
            sys.exit(1)
        dataset = load_dataset(sys.argv[position])
    else:
        dataset = create_dataset()

    compare_estimators(dataset, use_torch=use_torch, review_mode=review_mode)

    print("\n✅ Comparison complete!")
    if not review_mode:
        print("💡 Tip: Run with --review (-r) to see the top ranked points of every run")


if __name__ == "__main__":
    main()
