#!/usr/bin/env python3
"""Demo: inspect the rules of one random tree and the meta tree on the weather data.

Configures the run from a Weka-style option string, prints the decision
table of the first random tree, then the final meta tree.
"""

import pandas as pd

from mitree import Dataset, MetaInductionPipeline, MITConfig

pd.set_option("display.width", 200)
pd.set_option("display.max_columns", 30)

weather = pd.DataFrame({
    "outlook": ["sunny", "sunny", "overcast", "rainy", "rainy", "rainy", "overcast",
                "sunny", "sunny", "rainy", "sunny", "overcast", "overcast", "rainy"],
    "temperature": [85, 80, 83, 70, 68, 65, 64, 72, 69, 75, 75, 72, 81, 71],
    "humidity": [85, 90, 86, 96, 80, 70, 65, 95, 70, 80, 70, 90, 75, 91],
    "windy": ["FALSE", "TRUE", "FALSE", "FALSE", "FALSE", "TRUE", "TRUE",
              "FALSE", "FALSE", "FALSE", "TRUE", "TRUE", "FALSE", "TRUE"],
    "play": ["no", "no", "yes", "yes", "yes", "no", "yes",
             "no", "yes", "yes", "yes", "yes", "yes", "no"],
})
dataset = Dataset.from_frame(weather, "play", relation="weather")

config = MITConfig.from_options("-C 0.25 -M 1 -I 10 -STG I -W L")
pipeline = MetaInductionPipeline(config)
result = pipeline.run(dataset)

# ── Rules of the first random tree ──────────────────────────────────────
first_tree = pipeline.forest_learner.build(dataset, 1)[0]
print("Decision table of one random tree:")
print(pipeline.rule_table(dataset, first_tree))

# ── Meta tree ───────────────────────────────────────────────────────────
print()
print(result)
print()
print("Weights divided by the forest size:")
print(result.to_text(normalize=True))
print()
print(result.to_dot())
