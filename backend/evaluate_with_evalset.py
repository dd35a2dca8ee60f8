#!/usr/bin/env python3
"""
evaluate_with_evalset.py
Compara búsqueda solo léxica vs. léxica + fallback semántico sobre un evalset
(queries con gt_ids o pid). Solo mira la primera página de resultados.
Salida: imprime métricas por modo y guarda backend/eval_results.json
Uso:
    python backend/evaluate_with_evalset.py --eval backend/eval_queries.json
"""

import argparse
import json
import sys
import time
from typing import Any, Dict, List

import requests

API = "http://localhost:8000/search"
TIMEOUT = 10  # seconds for requests


def load_queries(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    out = []
    for q in raw:
        # normalizar: aceptar gt_ids (lista) o pid (string)
        entry = {"q": q.get("q") or q.get("query") or ""}
        if "gt_ids" in q and isinstance(q["gt_ids"], list):
            entry["gt_ids"] = [str(x) for x in q["gt_ids"]]
        elif q.get("pid"):
            entry["gt_ids"] = [str(q["pid"])]
        else:
            entry["gt_ids"] = []
        out.append(entry)
    return out


def call_search(api: str, q: str, semantic: bool) -> Dict[str, Any]:
    params = {"query": q}
    if semantic:
        params["semanticSearch"] = "1"
    try:
        r = requests.get(api, params=params, timeout=TIMEOUT)
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        print(f"Warning: search request failed for q='{q[:80]}' -> {e}", file=sys.stderr)
        return {"items": []}


def eval_queries(api: str, queries: List[Dict[str, Any]], semantic: bool) -> Dict[str, float]:
    hits = 0
    mrr_sum = 0.0
    n = 0
    total_time = 0.0

    for q in queries:
        gt = set(q.get("gt_ids", []))
        if not q.get("q") or not gt:
            # sin ground truth -> se ignora
            continue
        start = time.time()
        resp = call_search(api, q["q"], semantic)
        total_time += time.time() - start

        ids = [str(it.get("id")) for it in resp.get("items", [])]
        n += 1
        for rank, pid in enumerate(ids, start=1):
            if pid in gt:
                hits += 1
                mrr_sum += 1.0 / rank
                break

    if n == 0:
        return {"recall@page": 0.0, "mrr": 0.0, "time": total_time, "n": 0}
    return {"recall@page": hits / n, "mrr": mrr_sum / n, "time": total_time, "n": n}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--eval", required=True, help="Fichero JSON con queries (gt_ids o pid).")
    parser.add_argument("--api", default=API, help=f"URL del endpoint de búsqueda (default {API}).")
    parser.add_argument("--out", default="backend/eval_results.json")
    args = parser.parse_args()

    queries = load_queries(args.eval)
    print(f"Queries a evaluar: {len(queries)}")

    results = {}
    for mode, semantic in (("lexical", False), ("hybrid", True)):
        stats = eval_queries(args.api, queries, semantic)
        results[mode] = stats
        print(f"{mode:8s} recall@page={stats['recall@page']:.3f} mrr={stats['mrr']:.3f} time={stats['time']:.1f}s")

    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2, ensure_ascii=False)
    print(f"Resultados guardados en {args.out}")


if __name__ == "__main__":
    main()
