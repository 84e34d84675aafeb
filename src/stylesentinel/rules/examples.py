from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuleExample:
    bad: str
    good: str | None = None
    notes: str | None = None
    language: str = "cpp"


EXAMPLES: dict[str, RuleExample] = {
    "N01": RuleExample(
        bad="class Character : public AActor\n{\n\tbool Alive;\n};\n",
        good="class ACharacter : public AActor\n{\n\tbool bAlive;\n};\n",
        notes="Actor-derived types use `A`, object-derived `U`, widgets `S`, interfaces `I`, templates `T`, enums `E`, everything else `F`.",
    ),
    "N02": RuleExample(
        bad="void Send_HTTPRequest();\n",
        good="void SendHttpRequest();\n",
        notes="The prefix letter (and `b` for booleans) is ignored; acronyms longer than `max-acronym-run` are flagged.",
    ),
    "L01": RuleExample(
        bad="void AMyActor::Tick(float DeltaTime) {\n\tSuper::Tick(DeltaTime);\n}\n",
        good="void AMyActor::Tick(float DeltaTime)\n{\n\tSuper::Tick(DeltaTime);\n}\n",
    ),
    "L02": RuleExample(
        bad="AController* Instigator;\nAController * Owner;\n",
        good="AController *Instigator;\n",
    ),
    "L03": RuleExample(
        bad="class FFoo\n{\npublic:\n\tvoid Run();\n\tFFoo();\n};\n",
        good="class FFoo\n{\npublic:\n\tFFoo();\n\tvoid Run();\n};\n",
    ),
    "L04": RuleExample(
        bad="void F()\n{\n    Run();\n}\n",
        good="void F()\n{\n\tRun();\n}\n",
    ),
    "L05": RuleExample(
        bad="//Explain why\n",
        good="// Explain why\n",
    ),
    "L06": RuleExample(
        bad="if (bReady)\n\tFire();\n",
        good="if (bReady)\n{\n\tFire();\n}\n",
    ),
    "C01": RuleExample(
        bad="switch (Mode)\n{\ncase 1:\n\tStart();\ncase 2:\n\tStop();\n\tbreak;\n}\n",
        good="switch (Mode)\n{\ncase 1:\n\tStart();\n\t// fall through\ncase 2:\n\tStop();\n\tbreak;\n}\n",
        notes="Empty labels stacked on top of each other are fine.",
    ),
    "C02": RuleExample(
        bad="switch (Mode)\n{\ncase 1:\n\tbreak;\n}\n",
        good="switch (Mode)\n{\ncase 1:\n\tbreak;\ndefault:\n\tbreak;\n}\n",
    ),
    "C03": RuleExample(
        bad="class FShape\n{\npublic:\n\tvirtual float Area() const;\n};\n",
        good="class FShape\n{\npublic:\n\tvirtual ~FShape() = default;\n\tvirtual float Area() const;\n};\n",
    ),
    "C04": RuleExample(
        bad="AActor *Target = NULL;\n",
        good="AActor *Target = nullptr;\n",
    ),
    "C05": RuleExample(
        bad="unsigned int Count;\n",
        good="uint32 Count;\n",
    ),
    "H01": RuleExample(
        bad='#pragma once\n\n#include "MyActor.generated.h"\n#include "GameFramework/Actor.h"\n',
        good='#pragma once\n\n#include "CoreMinimal.h"\n#include "GameFramework/Actor.h"\n#include "MyActor.generated.h"\n',
        notes="Precompiled headers are matched with the `[style] pch` patterns.",
    ),
    "H02": RuleExample(
        bad="#ifndef MY_ACTOR_H\n#define MY_ACTOR_H\n#endif\n",
        good="#pragma once\n",
    ),
    "X01": RuleExample(
        bad='const TCHAR *Name = TEXT("unterminated);\n',
        good='const TCHAR *Name = TEXT("terminated");\n',
        notes="Files that cannot be tokenized report one X01 and skip all other rules.",
    ),
    "X02": RuleExample(
        bad="A rule raised an exception while checking a node.\n",
        notes="Run with --verbose to see the traceback.",
        language="text",
    ),
    "X03": RuleExample(
        bad="The file could not be read (permissions, broken symlink).\n",
        language="text",
    ),
}
