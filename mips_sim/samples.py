"""
Sample programs bundled with the simulator.

FIBONACCI is the default demo: prints "Fibonacci Sequence: " then
0 and the next N terms separated by ", ", then a newline.
"""

FIBONACCI = r"""# MIPS Fibonacci Generator
# Calculates the first N Fibonacci numbers

.data
msg_start: .asciiz "Fibonacci Sequence: "
space:     .asciiz ", "
newline:   .asciiz "\n"

.text
main:
    # Initialize variables
    addi $t0, $zero, 10    # N = 10 (count)
    addi $t1, $zero, 0     # a = 0
    addi $t2, $zero, 1     # b = 1

    # Print start message
    li $v0, 4
    la $a0, msg_start
    syscall

    # Print first number (0)
    li $v0, 1
    add $a0, $zero, $t1
    syscall

    # Print space
    li $v0, 4
    la $a0, space
    syscall

loop:
    # Check if N <= 0
    beq $t0, $zero, exit

    # Calculate next: c = a + b
    add $t3, $t1, $t2

    # Move: a = b, b = c
    add $t1, $zero, $t2
    add $t2, $zero, $t3

    # Print current number (b)
    li $v0, 1
    add $a0, $zero, $t1
    syscall

    # Decrement counter
    addi $t0, $t0, -1

    # Print separator if not last
    beq $t0, $zero, skip_comma
    li $v0, 4
    la $a0, space
    syscall

skip_comma:
    j loop

exit:
    # Print newline
    li $v0, 4
    la $a0, newline
    syscall

    # Exit program
    li $v0, 10
    syscall
"""

SAMPLES = {
    "fibonacci": FIBONACCI,
}
