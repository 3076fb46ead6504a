#!/usr/bin/env python3
"""Quickstart demo - insert, query, cluster and drift, fully offline.

Demonstrates:
- insert(): hash, embed, project and store text fragments
- query(): hybrid retrieval with per-signal scores
- aggregate(): the evidence direction of a result set
- Offline clustering into centroid anchors, then a drift pass

Uses the deterministic hashing embedder, so no API key or model download
is needed:
    HASHSPHERE_EMBEDDING_PROVIDER=hashing HASHSPHERE_EMBEDDING_DIM=256 \
        python examples/quickstart.py
"""

import asyncio

from hashsphere import HashSphereService, Settings, TenantScope, configure_logging
from hashsphere.workflows import assign_clusters, build_centroid_anchors


async def main() -> None:
    configure_logging(level="WARNING", format="text")
    settings = Settings(embedding_provider="hashing", embedding_dim=256)
    scope = TenantScope(user_id="quickstart_demo", org_id="demo_org")

    print("=" * 70)
    print("Hash Sphere Quickstart Demo")
    print("=" * 70)

    async with HashSphereService.create(settings=settings) as sphere:
        # =====================================================================
        # 1. INSERT
        # =====================================================================
        print("\n1. INSERTING MEMORIES")
        print("-" * 70)
        texts = [
            "The deploy failed twice today and I am frustrated",
            "Rolled back the deploy after the migration broke",
            "Database index rebuild finished overnight",
            "Shipped the new search index, latency is great!",
            "Lunch with the design team on Friday",
            "Maybe we should move the team offsite to Thursday?",
        ]
        for text in texts:
            uid = await sphere.insert(text, scope)
            record = sphere.get(uid, scope)
            assert record is not None
            print(
                f"  {uid[:12]}  r={record.r:.2f} phi={record.phi:+.2f} "
                f"theta={record.theta:+.2f}  R={record.resonance_score:+.2f}  {text[:40]}"
            )

        # =====================================================================
        # 2. QUERY
        # =====================================================================
        print("\n2. HYBRID QUERY: 'deploy rollback'")
        print("-" * 70)
        results = await sphere.query("deploy rollback", scope, top_k=3)
        for result in results:
            s = result.scores
            print(
                f"  #{result.rank} {result.score:.3f}  rag={s.rag:.2f} prox={s.proximity:.2f} "
                f"recency={s.recency:.2f}  {result.record.content[:40]}"
            )

        evidence = sphere.aggregate(results)
        print(
            f"\n  Evidence direction: ({evidence.x:+.2f}, {evidence.y:+.2f}, {evidence.z:+.2f})"
            f"  magnitude={evidence.magnitude:.2f}"
        )

        # =====================================================================
        # 3. CLUSTER AND DRIFT
        # =====================================================================
        print("\n3. CLUSTERING INTO ANCHORS, THEN DRIFT")
        print("-" * 70)
        clustering = assign_clusters(sphere.store, distance_threshold=0.8, tenant=scope)
        version = sphere.set_anchors(build_centroid_anchors(sphere.store.list_records(tenant=scope)))
        print(f"  {clustering.clusters} clusters -> anchor snapshot v{version}")

        report = sphere.run_drift()
        print(
            f"  Drift: {report.drifted} moved, {report.skipped} skipped, "
            f"{report.failed} failed in {report.batches} batches"
        )
        print(f"\n  Stats: {sphere.stats().model_dump()}")


if __name__ == "__main__":
    asyncio.run(main())
